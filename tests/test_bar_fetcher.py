from __future__ import annotations

import pytest

from chartfeed.datafeed.bars import BarFetcher
from chartfeed.domain.models import BarRow, BarRows
from chartfeed.errors import BarFetchFailure


def _fetcher(response: object, calls: list[tuple] | None = None) -> BarFetcher:
    async def fetch_bar_rows(symbol: str, start: int, end: int, resolution: str) -> object:
        if calls is not None:
            calls.append((symbol, start, end, resolution))
        if isinstance(response, Exception):
            raise response
        return response

    async def check_initial_data(_symbol: str) -> bool:
        return True

    return BarFetcher(fetch_bar_rows, check_initial_data)


@pytest.mark.asyncio
async def test_rows_become_millisecond_bars_in_backend_order() -> None:
    calls: list[tuple] = []
    response = BarRows(
        rows=[
            BarRow(timestamp=1000, open=1, high=2, low=0.5, close=1.5, volume=100),
            BarRow(timestamp=2000, open=2, high=1, low=1, close=2, volume=50),
        ],
        next_time=None,
    )
    fetcher = _fetcher(response, calls)

    page = await fetcher.get_bars("A1", "1D", 0, 3000)

    assert calls == [("A1", 0, 3000, "1D")]
    assert page.no_data is False
    assert [bar.time for bar in page.bars] == [1_000_000, 2_000_000]
    assert page.bars[0].to_record() == {
        "time": 1_000_000,
        "open": 1.0,
        "high": 2.0,
        "low": 0.5,
        "close": 1.5,
        "volume": 100.0,
    }
    assert page.meta() == {"noData": False}


@pytest.mark.asyncio
async def test_unsorted_rows_are_not_reordered() -> None:
    response = BarRows(
        rows=[
            BarRow(timestamp=30, open=1, high=1, low=1, close=1, volume=1),
            BarRow(timestamp=10, open=1, high=1, low=1, close=1, volume=1),
            BarRow(timestamp=20, open=1, high=1, low=1, close=1, volume=1),
        ]
    )

    page = await _fetcher(response).get_bars("A1", "1D", 0, 100)

    assert [bar.time for bar in page.bars] == [30_000, 10_000, 20_000]


@pytest.mark.asyncio
async def test_empty_rows_with_null_next_time_signal_exhaustion() -> None:
    page = await _fetcher(BarRows(rows=[], next_time=None)).get_bars("A1", "1D", 0, 100)

    assert page.no_data is True
    assert page.bars == []
    meta = page.meta()
    assert meta["noData"] is True
    assert "nextTime" in meta
    assert meta["nextTime"] is None


@pytest.mark.asyncio
async def test_empty_rows_forward_next_time_verbatim() -> None:
    page = await _fetcher(BarRows(rows=[], next_time=1_600_000_000)).get_bars(
        "A1", "1D", 1_700_000_000, 1_700_086_400
    )

    assert page.no_data is True
    assert page.meta() == {"noData": True, "nextTime": 1_600_000_000}


@pytest.mark.asyncio
async def test_mapping_responses_are_accepted() -> None:
    response = {
        "rows": [
            {"timestampSeconds": 1000, "open": 1, "high": 2, "low": 0.5, "close": 1.5, "volume": 100},
            {"timestampSeconds": 2000, "open": 2, "high": 1, "low": 1, "close": 2, "volume": 50},
        ],
        "nextTime": None,
    }

    page = await _fetcher(response).get_bars("A1", "1D", 0, 3000)

    assert [bar.time for bar in page.bars] == [1_000_000, 2_000_000]


@pytest.mark.asyncio
async def test_mapping_response_without_rows_keeps_next_time() -> None:
    page = await _fetcher({"data": [], "nextTime": 42}).get_bars("A1", "1D", 0, 100)

    assert page.meta() == {"noData": True, "nextTime": 42}


@pytest.mark.asyncio
async def test_resolution_aliases_are_normalized_before_fetch() -> None:
    calls: list[tuple] = []
    fetcher = _fetcher(BarRows(), calls)

    await fetcher.get_bars("A1", "W", 0, 1)
    await fetcher.get_bars("A1", "D", 0, 1)

    assert [call[3] for call in calls] == ["1W", "1D"]


@pytest.mark.asyncio
async def test_transport_errors_surface_as_bar_fetch_failure() -> None:
    fetcher = _fetcher(ConnectionError("backend down"))

    with pytest.raises(BarFetchFailure, match="backend down"):
        await fetcher.get_bars("A1", "1D", 0, 100)


@pytest.mark.asyncio
async def test_malformed_rows_surface_as_bar_fetch_failure() -> None:
    fetcher = _fetcher({"rows": [{"timestamp": 1, "open": "x"}], "nextTime": None})

    with pytest.raises(BarFetchFailure):
        await fetcher.get_bars("A1", "1D", 0, 100)


@pytest.mark.asyncio
async def test_has_initial_data_uses_preflight_collaborator() -> None:
    seen: list[str] = []

    async def fetch_bar_rows(*_args: object) -> BarRows:
        raise AssertionError("pre-flight must not fetch bars")

    async def check_initial_data(symbol: str) -> bool:
        seen.append(symbol)
        return False

    fetcher = BarFetcher(fetch_bar_rows, check_initial_data)

    assert await fetcher.has_initial_data("A9") is False
    assert seen == ["A9"]
