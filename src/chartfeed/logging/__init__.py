"""Logging helpers."""

from .event_sink import JsonlEventSink, load_events, summarize_events
from .logger import DatafeedLogger, setup_logger

__all__ = ["DatafeedLogger", "JsonlEventSink", "load_events", "setup_logger", "summarize_events"]
