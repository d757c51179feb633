"""JSONL trail of datafeed protocol calls."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any

from chartfeed.domain.events import DatafeedEvent
from chartfeed.logging.logger import DatafeedLogger


class JsonlEventSink:
    """Append datafeed events to a JSONL file, rolling it over past ``max_bytes``.

    The trail is diagnostic only. A failed write is logged and reported through
    the return value of ``emit``; it never interrupts the protocol call that
    produced the event.
    """

    def __init__(
        self,
        path: str,
        max_bytes: int | None = None,
        logger: DatafeedLogger | None = None,
    ) -> None:
        self.path = Path(path)
        self.max_bytes = max_bytes
        self._logger = logger or DatafeedLogger()
        self._failures = 0

    @property
    def rotated_path(self) -> Path:
        return self.path.with_name(self.path.name + ".1")

    @property
    def failures(self) -> int:
        return self._failures

    def emit(self, event: DatafeedEvent) -> bool:
        line = json.dumps(event.to_record(), sort_keys=True, default=str) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._rotate_if_needed(len(line.encode("utf-8")))
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError as exc:
            self._failures += 1
            self._logger.event_sink_failed(str(self.path), event.event_type, str(exc))
            return False
        return True

    def _rotate_if_needed(self, incoming: int) -> None:
        if self.max_bytes is None or not self.path.exists():
            return
        if self.path.stat().st_size + incoming <= self.max_bytes:
            return
        self.path.replace(self.rotated_path)


def load_events(
    path: str | Path,
    event_type: str | None = None,
    include_rotated: bool = True,
) -> list[dict[str, Any]]:
    """Load trail records oldest first, optionally filtered by event type."""
    current = Path(path)
    files = [current]
    if include_rotated:
        files.insert(0, current.with_name(current.name + ".1"))

    records: list[dict[str, Any]] = []
    for input_path in files:
        if not input_path.exists():
            continue
        with input_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                text = line.strip()
                if not text:
                    continue
                record = json.loads(text)
                if event_type is None or record.get("event_type") == event_type:
                    records.append(record)
    return records


def summarize_events(path: str | Path) -> dict[str, Any]:
    """Count trail records per event type and per symbol."""
    events = load_events(path)
    by_type = Counter(str(event.get("event_type", "")) for event in events)
    by_symbol = Counter(str(event.get("symbol")) for event in events if event.get("symbol"))
    no_data = sum(
        1
        for event in events
        if event.get("event_type") == "bars" and event.get("payload", {}).get("noData")
    )
    return {
        "total": len(events),
        "by_type": dict(sorted(by_type.items())),
        "by_symbol": dict(sorted(by_symbol.items())),
        "empty_pages": no_data,
    }
