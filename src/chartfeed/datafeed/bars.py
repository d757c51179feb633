"""Historical bar retrieval and page classification."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from chartfeed.domain.models import Bar, BarPage, BarRow, BarRows, normalize_resolution
from chartfeed.errors import BarFetchFailure
from chartfeed.logging.logger import DatafeedLogger

FetchBarRows = Callable[[str, int, int, str], Awaitable[BarRows | Mapping[str, Any]]]
CheckInitialData = Callable[[str], Awaitable[bool]]


class BarFetcher:
    """Turn backend rows into protocol bar pages.

    An empty response is not necessarily the end of history. The backend's
    ``nextTime`` hint is forwarded verbatim: a timestamp keeps the widget
    paging backward, ``None`` stops it for good.
    """

    def __init__(
        self,
        fetch_bar_rows: FetchBarRows,
        check_initial_data: CheckInitialData,
        logger: DatafeedLogger | None = None,
    ) -> None:
        self._fetch_bar_rows = fetch_bar_rows
        self._check_initial_data = check_initial_data
        self._logger = logger or DatafeedLogger()

    async def get_bars(
        self,
        symbol: str,
        resolution: str,
        range_from: int,
        range_to: int,
    ) -> BarPage:
        normalized_resolution = normalize_resolution(resolution)
        try:
            response = await self._fetch_bar_rows(
                symbol,
                range_from,
                range_to,
                normalized_resolution,
            )
            rows = self._coerce_rows(response)
            bars = [Bar.from_row(row) for row in rows.rows]
        except Exception as exc:
            self._logger.bar_error(symbol, normalized_resolution, str(exc))
            raise BarFetchFailure(f"{symbol}: bar fetch failed: {exc}") from exc

        if not bars:
            self._logger.no_data(symbol, normalized_resolution, rows.next_time)
            return BarPage(bars=[], no_data=True, next_time=rows.next_time)

        self._logger.bars(symbol, normalized_resolution, range_from, range_to, len(bars))
        return BarPage(bars=bars, no_data=False)

    async def has_initial_data(self, symbol: str) -> bool:
        return bool(await self._check_initial_data(symbol))

    @staticmethod
    def _coerce_rows(response: BarRows | Mapping[str, Any]) -> BarRows:
        if isinstance(response, BarRows):
            return response
        if not isinstance(response, Mapping):
            raise TypeError(f"unexpected bar response type {type(response).__name__}")
        raw_rows = response.get("rows")
        if raw_rows is None:
            raw_rows = response.get("data") or []
        rows = [row if isinstance(row, BarRow) else BarRow.from_record(row) for row in raw_rows]
        next_time = response.get("nextTime", response.get("next_time"))
        return BarRows(rows=rows, next_time=None if next_time is None else int(next_time))
