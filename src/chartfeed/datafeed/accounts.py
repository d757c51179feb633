"""Default account symbol resolution."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from chartfeed.errors import NoAccountsAvailable
from chartfeed.logging.logger import DatafeedLogger

ListAccounts = Callable[[], Awaitable[Sequence[str]]]


class AccountResolver:
    """Pick the account to chart when the caller does not name one.

    The backend is queried at most once per resolver; the first identifier it
    returns becomes the session default and is reused on every later call.
    """

    def __init__(
        self,
        list_accounts: ListAccounts,
        logger: DatafeedLogger | None = None,
    ) -> None:
        self._list_accounts = list_accounts
        self._logger = logger or DatafeedLogger()
        self._default_symbol: str | None = None
        self._lock = asyncio.Lock()

    @property
    def default_symbol(self) -> str | None:
        return self._default_symbol

    async def list_identifiers(self) -> list[str]:
        return list(await self._list_accounts())

    async def resolve_default_symbol(self, explicit_symbol: str | None = None) -> str:
        if explicit_symbol:
            return explicit_symbol
        if self._default_symbol is not None:
            return self._default_symbol

        async with self._lock:
            if self._default_symbol is not None:
                return self._default_symbol
            identifiers = await self.list_identifiers()
            if not identifiers:
                raise NoAccountsAvailable("No account identifiers available to chart")
            self._default_symbol = identifiers[0]
            self._logger.default_symbol(self._default_symbol, "first account")
            return self._default_symbol
