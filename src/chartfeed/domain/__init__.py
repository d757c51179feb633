"""Domain models and event types."""

from .events import DatafeedEvent
from .models import (
    SUPPORTED_RESOLUTIONS,
    Bar,
    BarPage,
    BarRow,
    BarRows,
    Capabilities,
    DatafeedState,
    PeriodParams,
    SearchResult,
    SymbolInfo,
    normalize_resolution,
)

__all__ = [
    "SUPPORTED_RESOLUTIONS",
    "Bar",
    "BarPage",
    "BarRow",
    "BarRows",
    "Capabilities",
    "DatafeedEvent",
    "DatafeedState",
    "PeriodParams",
    "SearchResult",
    "SymbolInfo",
    "normalize_resolution",
]
