"""Symbol metadata resolution and account search."""

from __future__ import annotations

from chartfeed.datafeed.accounts import ListAccounts
from chartfeed.domain.models import SearchResult, SymbolInfo
from chartfeed.errors import SearchBackendFailure
from chartfeed.logging.logger import DatafeedLogger


class SymbolCatalog:
    """Describe account symbols and search the known account set."""

    def __init__(
        self,
        list_accounts: ListAccounts,
        logger: DatafeedLogger | None = None,
    ) -> None:
        self._list_accounts = list_accounts
        self._logger = logger or DatafeedLogger()

    def resolve_symbol(self, name: str | None, fallback: str | None = None) -> SymbolInfo:
        """Synthesize metadata for any name; an empty name uses ``fallback``."""
        symbol = (name or "").strip() or (fallback or "")
        return SymbolInfo.for_symbol(symbol)

    async def search(self, query: str | None) -> list[SearchResult]:
        """Return accounts containing ``query`` (case-insensitive); never raises."""
        try:
            identifiers = await self._fetch_identifiers()
        except SearchBackendFailure as exc:
            self._logger.search_failed(query or "", str(exc))
            return []

        needle = (query or "").lower()
        return [
            SearchResult.for_symbol(identifier)
            for identifier in identifiers
            if needle in identifier.lower()
        ]

    async def _fetch_identifiers(self) -> list[str]:
        try:
            return [str(item) for item in await self._list_accounts()]
        except Exception as exc:
            raise SearchBackendFailure(f"Account search failed: {exc}") from exc
