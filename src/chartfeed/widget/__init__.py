"""Widget lifecycle boundary."""

from .loader import LibraryLoader, get_shared_loader, reset_shared_loader
from .mount import ChartMount, ChartWidget, MountStatus, WidgetOptions

__all__ = [
    "ChartMount",
    "ChartWidget",
    "LibraryLoader",
    "MountStatus",
    "WidgetOptions",
    "get_shared_loader",
    "reset_shared_loader",
]
