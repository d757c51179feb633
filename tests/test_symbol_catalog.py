from __future__ import annotations

import pytest

from chartfeed.datafeed.catalog import SymbolCatalog
from chartfeed.domain.models import PRICE_SCALE, SUPPORTED_RESOLUTIONS


async def _accounts() -> list[str]:
    return ["ACC-001", "acc-002", "Savings9"]


@pytest.mark.asyncio
async def test_empty_query_returns_every_account() -> None:
    catalog = SymbolCatalog(_accounts)

    results = await catalog.search("")

    assert [result.symbol for result in results] == ["ACC-001", "acc-002", "Savings9"]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_containment() -> None:
    catalog = SymbolCatalog(_accounts)

    results = await catalog.search("Acc")

    assert [result.symbol for result in results] == ["ACC-001", "acc-002"]
    assert results[0].to_record() == {
        "symbol": "ACC-001",
        "full_name": "ACC-001",
        "description": "Account ACC-001",
        "exchange": "LOCAL",
        "ticker": "ACC-001",
        "type": "financial",
    }


@pytest.mark.asyncio
async def test_unmatched_query_returns_empty_list() -> None:
    catalog = SymbolCatalog(_accounts)

    assert await catalog.search("zzz") == []


@pytest.mark.asyncio
async def test_backend_failure_yields_empty_list(log_lines) -> None:
    logger, lines = log_lines

    async def broken() -> list[str]:
        raise TimeoutError("slow backend")

    catalog = SymbolCatalog(broken, logger=logger)

    assert await catalog.search("A") == []
    assert any(line.startswith("search_failed") and "slow backend" in line for line in lines)


def test_resolve_symbol_synthesizes_metadata() -> None:
    catalog = SymbolCatalog(_accounts)

    info = catalog.resolve_symbol("XYZ")

    assert info.name == "XYZ"
    assert info.ticker == "XYZ"
    assert info.description == "Account XYZ"
    assert info.pricescale == PRICE_SCALE
    assert info.supported_resolutions == SUPPORTED_RESOLUTIONS
    record = info.to_record()
    assert record["supported_resolutions"] == list(SUPPORTED_RESOLUTIONS)
    assert record["exchange"] == "LOCAL"


def test_resolve_symbol_falls_back_for_blank_names() -> None:
    catalog = SymbolCatalog(_accounts)

    assert catalog.resolve_symbol("  ", fallback="A1").name == "A1"
    assert catalog.resolve_symbol(None, fallback="A1").name == "A1"
    assert catalog.resolve_symbol("B2", fallback="A1").name == "B2"
