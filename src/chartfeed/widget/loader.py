"""Process-wide charting library loader.

The host's charting library is a singleton resource. The first mount loads
it, later mounts reuse it, and the last mount to release it unloads it.
Concurrent acquires share a single load.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from chartfeed.errors import LibraryLoadError
from chartfeed.logging.logger import DatafeedLogger

LoadSource = Callable[[str], Awaitable[None]]
Unload = Callable[[], Awaitable[None] | None]


class LibraryLoader:
    """Reference-counted, load-once wrapper around host load/unload hooks."""

    def __init__(
        self,
        sources: list[str],
        load: LoadSource,
        unload: Unload | None = None,
        logger: DatafeedLogger | None = None,
    ) -> None:
        if not sources:
            raise ValueError("LibraryLoader needs at least one source")
        self.sources = list(sources)
        self._load = load
        self._unload = unload
        self._logger = logger or DatafeedLogger()
        self._lock = asyncio.Lock()
        self._ref_count = 0
        self._active_source: str | None = None

    @property
    def loaded(self) -> bool:
        return self._active_source is not None

    @property
    def active_source(self) -> str | None:
        return self._active_source

    @property
    def ref_count(self) -> int:
        return self._ref_count

    async def acquire(self) -> str:
        """Ensure the library is loaded and register one more user."""
        async with self._lock:
            if self._active_source is None:
                self._active_source = await self._load_first_available()
            self._ref_count += 1
            return self._active_source

    async def release(self) -> None:
        """Drop one user; unload after the last one leaves."""
        async with self._lock:
            if self._ref_count == 0:
                return
            self._ref_count -= 1
            if self._ref_count > 0 or self._active_source is None:
                return
            source = self._active_source
            self._active_source = None
            if self._unload is not None:
                result = self._unload()
                if inspect.isawaitable(result):
                    await result
            self._logger.library("unloaded", source)

    async def _load_first_available(self) -> str:
        failures: list[str] = []
        for source in self.sources:
            try:
                await self._load(source)
            except Exception as exc:
                failures.append(f"{source}: {exc}")
                self._logger.error(f"library load failed from {source}: {exc}")
                continue
            self._logger.library("loaded", source)
            return source
        raise LibraryLoadError("Charting library could not be loaded: " + "; ".join(failures))


_shared_loader: LibraryLoader | None = None


def get_shared_loader(
    sources: list[str] | None = None,
    load: LoadSource | None = None,
    unload: Unload | None = None,
) -> LibraryLoader:
    """Return the process-wide loader, creating it on first use."""
    global _shared_loader
    if _shared_loader is None:
        if not sources or load is None:
            raise LibraryLoadError("The shared library loader needs sources and a load hook")
        _shared_loader = LibraryLoader(sources, load, unload)
    return _shared_loader


def reset_shared_loader() -> None:
    """Forget the process-wide loader (tests and host shutdown)."""
    global _shared_loader
    _shared_loader = None
