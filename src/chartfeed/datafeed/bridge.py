"""Callback-style facade over the async datafeed."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

from chartfeed.datafeed.adapter import Datafeed, PeriodLike, SymbolLike
from chartfeed.errors import BarFetchFailure
from chartfeed.logging.logger import DatafeedLogger


class CallbackDatafeed:
    """Expose a ``Datafeed`` through the widget's callback protocol.

    Every method returns immediately and delivers its result later through
    the supplied callback. After ``dispose()`` no callback fires, including
    for requests that were already in flight.
    """

    def __init__(self, datafeed: Datafeed, logger: DatafeedLogger | None = None) -> None:
        self.datafeed = datafeed
        self._logger = logger or DatafeedLogger()
        self._alive = True
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def alive(self) -> bool:
        return self._alive

    def dispose(self) -> None:
        self._alive = False
        self.datafeed.close()

    async def drain(self) -> None:
        """Wait for scheduled work to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def onReady(self, callback: Callable[[dict[str, Any]], Any]) -> None:  # noqa: N802
        async def run() -> None:
            capabilities = await self.datafeed.on_ready()
            self._deliver(callback, capabilities.to_record())

        self._schedule(run(), "onReady")

    def searchSymbols(  # noqa: N802
        self,
        user_input: str,
        exchange: str,
        symbol_type: str,
        on_result: Callable[[list[dict[str, str]]], Any],
    ) -> None:
        async def run() -> None:
            try:
                results = await self.datafeed.search_symbols(user_input, exchange, symbol_type)
            except Exception as exc:
                self._logger.search_failed(user_input, str(exc))
                results = []
            self._deliver(on_result, [result.to_record() for result in results])

        self._schedule(run(), "searchSymbols")

    def resolveSymbol(  # noqa: N802
        self,
        symbol_name: str,
        on_resolved: Callable[[dict[str, Any]], Any],
        on_error: Callable[[str], Any] | None = None,
        extension: dict[str, Any] | None = None,
    ) -> None:
        _ = extension

        async def run() -> None:
            try:
                info = await self.datafeed.resolve_symbol(symbol_name)
            except Exception as exc:
                self._logger.error(f"resolveSymbol failed for {symbol_name}: {exc}")
                if on_error is not None:
                    self._deliver(on_error, str(exc))
                return
            self._deliver(on_resolved, info.to_record())

        self._schedule(run(), "resolveSymbol")

    def getBars(  # noqa: N802
        self,
        symbol_info: SymbolLike,
        resolution: str,
        period_params: PeriodLike,
        on_history: Callable[[list[dict[str, Any]], dict[str, Any]], Any],
        on_error: Callable[[str], Any],
    ) -> None:
        async def run() -> None:
            try:
                page = await self.datafeed.get_bars(symbol_info, resolution, period_params)
            except BarFetchFailure as exc:
                self._deliver(on_error, str(exc))
                return
            except Exception as exc:
                self._logger.error(f"getBars failed unexpectedly: {exc}")
                self._deliver(on_error, f"bar request failed: {exc}")
                return
            self._deliver(on_history, [bar.to_record() for bar in page.bars], page.meta())

        self._schedule(run(), "getBars")

    def subscribeBars(  # noqa: N802
        self,
        symbol_info: SymbolLike,
        resolution: str,
        on_realtime: Callable[..., Any],
        subscriber_uid: str,
        on_reset_cache_needed: Callable[[], Any] | None = None,
    ) -> None:
        if not self._alive:
            return
        self.datafeed.subscribe_bars(
            symbol_info,
            resolution,
            on_realtime,
            subscriber_uid,
            on_reset_cache_needed,
        )

    def unsubscribeBars(self, subscriber_uid: str) -> None:  # noqa: N802
        self.datafeed.unsubscribe_bars(subscriber_uid)

    def _deliver(self, callback: Callable[..., Any], *args: Any) -> None:
        if not self._alive:
            return
        callback(*args)

    def _schedule(self, work: Coroutine[Any, Any, None], name: str) -> None:
        if not self._alive:
            work.close()
            return
        task = asyncio.get_running_loop().create_task(work, name=f"chartfeed.{name}")
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(f"{task.get_name()} failed: {exc}")
