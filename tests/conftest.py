from __future__ import annotations

import logging
from collections.abc import Iterator
from uuid import uuid4

import pytest

from chartfeed.logging.logger import DatafeedLogger
from chartfeed.widget.loader import reset_shared_loader


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


@pytest.fixture
def log_lines() -> Iterator[tuple[DatafeedLogger, list[str]]]:
    """A DatafeedLogger on an isolated logger plus the lines it wrote."""
    logger = logging.getLogger(f"chartfeed.test.{uuid4().hex}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = ListHandler()
    logger.addHandler(handler)
    yield DatafeedLogger(logger), handler.messages
    logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def _fresh_shared_loader() -> Iterator[None]:
    reset_shared_loader()
    yield
    reset_shared_loader()
