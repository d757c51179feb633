"""Datafeed composition for the charting widget's history protocol."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any, Self

from chartfeed.backend.base import ChartingBackend
from chartfeed.datafeed.accounts import AccountResolver, ListAccounts
from chartfeed.datafeed.bars import BarFetcher, CheckInitialData, FetchBarRows
from chartfeed.datafeed.catalog import SymbolCatalog
from chartfeed.domain.events import DatafeedEvent
from chartfeed.domain.models import (
    BarPage,
    Capabilities,
    DatafeedState,
    PeriodParams,
    SearchResult,
    SymbolInfo,
)
from chartfeed.errors import BarFetchFailure, NoInitialData
from chartfeed.logging.event_sink import JsonlEventSink
from chartfeed.logging.logger import DatafeedLogger

SymbolLike = SymbolInfo | Mapping[str, Any]
PeriodLike = PeriodParams | Mapping[str, Any]


class Datafeed:
    """Account-history datafeed built from three backend collaborators.

    States move from ``UNINITIALIZED`` to ``CAPABILITIES_ANNOUNCED`` on the
    ready handshake and to ``READY`` once a default symbol is known and the
    pre-flight check found data. ``close()`` makes the instance ``DISPOSED``.
    """

    def __init__(
        self,
        list_accounts: ListAccounts,
        fetch_bar_rows: FetchBarRows,
        fetch_initial_data_available: CheckInitialData,
        logger: DatafeedLogger | None = None,
        event_sink: JsonlEventSink | None = None,
    ) -> None:
        self._logger = logger or DatafeedLogger()
        self._event_sink = event_sink
        self.accounts = AccountResolver(list_accounts, logger=self._logger)
        self.catalog = SymbolCatalog(list_accounts, logger=self._logger)
        self.bars = BarFetcher(
            fetch_bar_rows,
            fetch_initial_data_available,
            logger=self._logger,
        )
        self.capabilities = Capabilities()
        self._capabilities_announced = False
        self._symbol: str | None = None
        self._disposed = False

    @classmethod
    def from_backend(cls, backend: ChartingBackend, **kwargs: Any) -> Self:
        return cls(
            backend.list_account_identifiers,
            backend.fetch_bar_rows,
            backend.fetch_initial_data_available,
            **kwargs,
        )

    @property
    def state(self) -> DatafeedState:
        if self._disposed:
            return DatafeedState.DISPOSED
        if not self._capabilities_announced:
            return DatafeedState.UNINITIALIZED
        if self._symbol is None:
            return DatafeedState.CAPABILITIES_ANNOUNCED
        return DatafeedState.READY

    @property
    def symbol(self) -> str | None:
        """Symbol confirmed by ``prepare``."""
        return self._symbol

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def on_ready(self) -> Capabilities:
        # One loop tick keeps the widget's initialization from re-entering.
        await asyncio.sleep(0)
        self._capabilities_announced = True
        self._emit("ready")
        return self.capabilities

    async def prepare(self, explicit_symbol: str | None = None) -> str:
        """Resolve the symbol to chart and confirm it has data.

        Raises ``NoAccountsAvailable`` before any bar request when nothing can
        be charted, and ``NoInitialData`` when the pre-flight check is empty.
        """
        symbol = await self.accounts.resolve_default_symbol(explicit_symbol)
        if not await self.bars.has_initial_data(symbol):
            self._emit("no_initial_data", symbol)
            raise NoInitialData(symbol)
        self._symbol = symbol
        self._emit("prepared", symbol)
        return symbol

    async def resolve_symbol(self, name: str | None) -> SymbolInfo:
        await asyncio.sleep(0)
        fallback = self._symbol or self.accounts.default_symbol
        info = self.catalog.resolve_symbol(name, fallback=fallback)
        self._emit("resolve", info.name)
        return info

    async def search_symbols(
        self,
        user_input: str | None,
        exchange: str = "",
        symbol_type: str = "",
    ) -> list[SearchResult]:
        _ = (exchange, symbol_type)
        results = await self.catalog.search(user_input)
        self._emit("search", payload={"query": user_input or "", "count": len(results)})
        return results

    async def get_bars(
        self,
        symbol_info: SymbolLike,
        resolution: str,
        period: PeriodLike,
    ) -> BarPage:
        symbol = self._symbol_of(symbol_info)
        try:
            params = self._period_of(period)
        except (KeyError, TypeError, ValueError) as exc:
            self._logger.bar_error(symbol, resolution, f"invalid period {period!r}: {exc}")
            self._emit("bars_error", symbol, {"resolution": resolution, "message": str(exc)})
            raise BarFetchFailure(f"{symbol}: invalid period: {exc}") from exc
        try:
            page = await self.bars.get_bars(symbol, resolution, params.from_time, params.to_time)
        except BarFetchFailure as exc:
            self._emit("bars_error", symbol, {"resolution": resolution, "message": str(exc)})
            raise
        self._emit(
            "bars",
            symbol,
            {
                "resolution": resolution,
                "from": params.from_time,
                "to": params.to_time,
                "count": len(page.bars),
                **page.meta(),
            },
        )
        return page

    def subscribe_bars(
        self,
        symbol_info: SymbolLike,
        resolution: str,
        on_realtime: Callable[..., Any] | None,
        subscriber_uid: str,
        on_reset_cache_needed: Callable[[], Any] | None = None,
    ) -> None:
        """Static history only: ask the widget to drop its cache and pull again."""
        _ = (symbol_info, resolution, on_realtime)
        self._emit("subscribe", payload={"uid": subscriber_uid})
        if on_reset_cache_needed is None or self._disposed:
            return
        try:
            on_reset_cache_needed()
        except Exception as exc:
            self._logger.error(f"reset cache hook failed for {subscriber_uid}: {exc}")

    def unsubscribe_bars(self, subscriber_uid: str) -> None:
        self._emit("unsubscribe", payload={"uid": subscriber_uid})

    def follow_symbol(self, symbol: str) -> None:
        """Adopt a symbol the user picked in the widget as the new fallback."""
        if self._disposed or not symbol or symbol == self._symbol:
            return
        self._symbol = symbol
        self._emit("symbol_changed", symbol)

    def close(self) -> None:
        self._disposed = True

    @staticmethod
    def _period_of(period: PeriodLike) -> PeriodParams:
        if isinstance(period, PeriodParams):
            return period
        return PeriodParams.from_record(period)

    @staticmethod
    def _symbol_of(symbol_info: SymbolLike) -> str:
        if isinstance(symbol_info, SymbolInfo):
            return symbol_info.ticker or symbol_info.name
        return str(symbol_info.get("ticker") or symbol_info.get("name") or "")

    def _emit(
        self,
        event_type: str,
        symbol: str = "",
        payload: dict[str, Any] | None = None,
    ) -> None:
        if self._event_sink is None:
            return
        self._event_sink.emit(
            DatafeedEvent(event_type=event_type, symbol=symbol, payload=payload or {})
        )
