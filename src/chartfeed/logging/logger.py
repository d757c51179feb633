"""Concise human-readable datafeed logger."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOGGER_NAME = "chartfeed"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_HANDLER_MARK = "_chartfeed_handler"


def setup_logger(log_level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure and return the chartfeed logger.

    Console output goes to stderr so CLI results on stdout stay parseable.
    Calling this again replaces the handlers it installed earlier, which lets
    a later call change the level or the log file.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        logger.addHandler(handler)

    return logger


class DatafeedLogger:
    """Logger with fixed line types for datafeed calls."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def bars(
        self,
        symbol: str,
        resolution: str,
        range_from: int,
        range_to: int,
        count: int,
    ) -> None:
        self._logger.debug(
            "bars | %s | %s | %s..%s | count %d",
            symbol,
            resolution,
            range_from,
            range_to,
            count,
        )

    def no_data(self, symbol: str, resolution: str, next_time: int | None) -> None:
        hint = "exhausted" if next_time is None else f"next {next_time}"
        self._logger.info("no_data | %s | %s | %s", symbol, resolution, hint)

    def bar_error(self, symbol: str, resolution: str, message: str) -> None:
        self._logger.error("bar_error | %s | %s | %s", symbol, resolution, message)

    def search_failed(self, query: str, message: str) -> None:
        self._logger.warning("search_failed | %r | %s", query, message)

    def default_symbol(self, symbol: str, source: str) -> None:
        self._logger.info("symbol | %s | %s", symbol, source)

    def symbol_changed(self, previous: str | None, current: str) -> None:
        self._logger.info("symbol_changed | %s -> %s", previous or "-", current)

    def mount(self, status: str, symbol: str | None = None, detail: str | None = None) -> None:
        parts = [f"mount | {status}"]
        if symbol:
            parts.append(symbol)
        if detail:
            parts.append(detail)
        self._logger.info(" | ".join(parts))

    def library(self, action: str, source: str | None = None) -> None:
        if source:
            self._logger.info("library | %s | %s", action, source)
        else:
            self._logger.info("library | %s", action)

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)

    def event_sink_failed(self, path: str, event_type: str, message: str) -> None:
        self._logger.warning("event_sink | %s | %s | %s", path, event_type, message)
