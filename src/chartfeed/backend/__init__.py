"""Charting backend implementations."""

from .base import ChartingBackend
from .csv_backend import CsvChartingBackend
from .http_backend import HttpChartingBackend

__all__ = ["ChartingBackend", "CsvChartingBackend", "HttpChartingBackend"]
