"""Charting backend contract."""

from __future__ import annotations

from typing import Protocol

from chartfeed.domain.models import BarRows


class ChartingBackend(Protocol):
    """Interface for account listing and bar retrieval."""

    async def list_account_identifiers(self) -> list[str]:
        """Return every known account identifier, in backend order."""

    async def fetch_bar_rows(
        self,
        symbol: str,
        from_inclusive: int,
        to_inclusive: int,
        resolution: str,
    ) -> BarRows:
        """Return time-ordered rows (seconds) plus the earlier-history hint."""

    async def fetch_initial_data_available(self, symbol: str) -> bool:
        """Return whether the symbol has any bar worth charting."""

    def close(self) -> None:
        """Release connections or caches held by the backend."""
