"""Chart widget mount lifecycle."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol
from uuid import uuid4

from chartfeed.config import Settings
from chartfeed.datafeed.adapter import Datafeed
from chartfeed.datafeed.bridge import CallbackDatafeed
from chartfeed.errors import (
    LibraryLoadError,
    NoAccountsAvailable,
    NoInitialData,
    WidgetConstructionFailure,
)
from chartfeed.logging.logger import DatafeedLogger
from chartfeed.widget.loader import LibraryLoader


class MountStatus(StrEnum):
    """What the host view should show for one mount."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    NO_DATA = "no_data"
    FAILED = "failed"
    UNMOUNTED = "unmounted"


@dataclass(frozen=True)
class WidgetOptions:
    """Construction options handed to the host's widget factory."""

    symbol: str
    datafeed: CallbackDatafeed
    container: str = field(default_factory=lambda: f"tv_chart_container_{uuid4().hex[:12]}")
    interval: str = "1D"
    library_path: str = "/charting_library/"
    timezone: str = "Etc/UTC"
    locale: str = "en"


class ChartWidget(Protocol):
    """Subset of the host widget API the mount relies on."""

    def on_chart_ready(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once the chart has rendered."""

    def subscribe_symbol_changed(self, callback: Callable[[Any], None]) -> None:
        """Register a callback fired when the user picks another symbol."""

    def remove(self) -> None:
        """Destroy the widget."""


WidgetFactory = Callable[[WidgetOptions], ChartWidget]


class ChartMount:
    """Build one widget for one account and tear it down cleanly.

    ``mount()`` never raises for expected failures; it reports them through
    ``MountStatus`` so the host view can render a fallback state.
    """

    def __init__(
        self,
        datafeed_factory: Callable[[], Datafeed],
        widget_factory: WidgetFactory,
        loader: LibraryLoader,
        settings: Settings | None = None,
        on_symbol_change: Callable[[str], Any] | None = None,
        on_chart_ready: Callable[[ChartWidget], Any] | None = None,
        logger: DatafeedLogger | None = None,
    ) -> None:
        self._datafeed_factory = datafeed_factory
        self._widget_factory = widget_factory
        self._loader = loader
        self._settings = settings or Settings()
        self._on_symbol_change = on_symbol_change
        self._on_chart_ready = on_chart_ready
        self._logger = logger or DatafeedLogger()
        self._status = MountStatus.IDLE
        self._alive = True
        self._holds_library = False
        self._bridge: CallbackDatafeed | None = None
        self._widget: ChartWidget | None = None
        self._symbol: str | None = None

    @property
    def status(self) -> MountStatus:
        return self._status

    @property
    def symbol(self) -> str | None:
        return self._symbol

    @property
    def widget(self) -> ChartWidget | None:
        return self._widget

    @property
    def datafeed(self) -> CallbackDatafeed | None:
        return self._bridge

    async def mount(self, explicit_symbol: str | None = None) -> MountStatus:
        if self._status is not MountStatus.IDLE:
            raise RuntimeError(f"ChartMount cannot mount from status {self._status}")
        self._set_status(MountStatus.LOADING)
        try:
            await self._loader.acquire()
            if not self._alive:
                await self._loader.release()
                return self._status
            self._holds_library = True

            bridge = CallbackDatafeed(self._datafeed_factory(), logger=self._logger)
            self._bridge = bridge
            symbol = await bridge.datafeed.prepare(explicit_symbol)
            if not self._alive:
                return self._status
            self._symbol = symbol
            self._widget = self._build_widget(symbol, bridge)
            self._widget.on_chart_ready(self._handle_chart_ready)
        except NoInitialData as exc:
            self._abandon(MountStatus.NO_DATA, str(exc))
        except (NoAccountsAvailable, LibraryLoadError, WidgetConstructionFailure) as exc:
            self._abandon(MountStatus.FAILED, str(exc))
        except Exception as exc:
            self._abandon(MountStatus.FAILED, f"unexpected mount failure: {exc}")
        return self._status

    async def unmount(self) -> None:
        if not self._alive:
            return
        self._alive = False
        if self._bridge is not None:
            self._bridge.dispose()
        widget, self._widget = self._widget, None
        if widget is not None:
            try:
                widget.remove()
            except Exception as exc:
                self._logger.error(f"widget removal failed: {exc}")
        if self._holds_library:
            self._holds_library = False
            await self._loader.release()
        self._status = MountStatus.UNMOUNTED
        self._logger.mount(self._status.value, self._symbol)

    def _build_widget(self, symbol: str, bridge: CallbackDatafeed) -> ChartWidget:
        options = WidgetOptions(
            symbol=symbol,
            datafeed=bridge,
            interval=self._settings.resolution,
            library_path=self._settings.library_path,
            timezone=self._settings.timezone,
        )
        try:
            return self._widget_factory(options)
        except Exception as exc:
            raise WidgetConstructionFailure(f"widget construction failed: {exc}") from exc

    def _handle_chart_ready(self) -> None:
        if not self._alive or self._widget is None:
            return
        self._set_status(MountStatus.READY)
        self._widget.subscribe_symbol_changed(self._handle_symbol_changed)
        if self._on_chart_ready is not None:
            try:
                self._on_chart_ready(self._widget)
            except Exception as exc:
                self._logger.error(f"chart ready hook failed: {exc}")

    def _handle_symbol_changed(self, new_symbol: Any) -> None:
        if not self._alive:
            return
        name = self._symbol_name(new_symbol)
        if not name or name == self._symbol:
            return
        previous, self._symbol = self._symbol, name
        self._logger.symbol_changed(previous, name)
        if self._bridge is not None:
            self._bridge.datafeed.follow_symbol(name)
        if self._on_symbol_change is None:
            return
        try:
            self._on_symbol_change(name)
        except Exception as exc:
            self._logger.error(f"symbol change hook failed: {exc}")

    def _abandon(self, status: MountStatus, detail: str) -> None:
        if self._bridge is not None:
            self._bridge.dispose()
        widget, self._widget = self._widget, None
        if widget is not None:
            try:
                widget.remove()
            except Exception as exc:
                self._logger.error(f"widget removal failed: {exc}")
        if not self._alive:
            return
        self._set_status(status, detail)

    def _set_status(self, status: MountStatus, detail: str | None = None) -> None:
        self._status = status
        self._logger.mount(status.value, self._symbol, detail)

    @staticmethod
    def _symbol_name(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, dict):
            return str(value.get("name") or value.get("ticker") or "")
        return str(getattr(value, "name", "") or "")
