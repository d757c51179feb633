"""Core datafeed domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

SUPPORTED_RESOLUTIONS = ("1D", "1W", "1M")
EXCHANGE_TAG = "LOCAL"
SYMBOL_TYPE = "financial"
TIMEZONE = "Etc/UTC"
PRICE_SCALE = 100


class DatafeedState(StrEnum):
    """Handshake progress of one datafeed instance."""

    UNINITIALIZED = "uninitialized"
    CAPABILITIES_ANNOUNCED = "capabilities_announced"
    READY = "ready"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class BarRow:
    """One raw price row as returned by the backend (seconds)."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> BarRow:
        """Build a row from a backend mapping, coercing numeric fields."""
        timestamp = record["timestamp"] if "timestamp" in record else record["timestampSeconds"]
        return cls(
            timestamp=int(timestamp),
            open=float(record["open"]),
            high=float(record["high"]),
            low=float(record["low"]),
            close=float(record["close"]),
            volume=float(record.get("volume") or 0.0),
        )


@dataclass(frozen=True)
class BarRows:
    """Backend history response: rows plus the earlier-history hint."""

    rows: list[BarRow] = field(default_factory=list)
    next_time: int | None = None


@dataclass(frozen=True)
class Bar:
    """OHLCV sample in protocol shape (millisecond time)."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_row(cls, row: BarRow) -> Bar:
        return cls(
            time=row.timestamp * 1000,
            open=row.open,
            high=row.high,
            low=row.low,
            close=row.close,
            volume=row.volume,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class BarPage:
    """Result of one history fetch.

    ``next_time`` only has meaning when ``no_data`` is set: a timestamp means
    earlier history may exist before it, ``None`` means history is exhausted.
    """

    bars: list[Bar] = field(default_factory=list)
    no_data: bool = False
    next_time: int | None = None

    def meta(self) -> dict[str, Any]:
        """Return the history callback metadata."""
        if not self.no_data:
            return {"noData": False}
        return {"noData": True, "nextTime": self.next_time}


@dataclass(frozen=True)
class PeriodParams:
    """Requested history range in seconds."""

    from_time: int
    to_time: int
    count_back: int | None = None
    first_data_request: bool = False

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PeriodParams:
        return cls(
            from_time=int(record["from"]),
            to_time=int(record["to"]),
            count_back=record.get("countBack"),
            first_data_request=bool(record.get("firstDataRequest", False)),
        )


@dataclass(frozen=True)
class SymbolInfo:
    """Metadata describing one account symbol to the charting protocol."""

    ticker: str
    name: str
    description: str
    type: str = SYMBOL_TYPE
    session: str = "24x7"
    timezone: str = TIMEZONE
    exchange: str = EXCHANGE_TAG
    minmov: int = 1
    pricescale: int = PRICE_SCALE
    has_intraday: bool = True
    visible_plots_set: str = "ohlc"
    has_weekly_and_monthly: bool = True
    supported_resolutions: tuple[str, ...] = SUPPORTED_RESOLUTIONS
    volume_precision: int = 2
    supports_search: bool = True
    data_status: str = "streaming"

    @classmethod
    def for_symbol(cls, symbol: str) -> SymbolInfo:
        return cls(ticker=symbol, name=symbol, description=f"Account {symbol}")

    def to_record(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "session": self.session,
            "timezone": self.timezone,
            "exchange": self.exchange,
            "minmov": self.minmov,
            "pricescale": self.pricescale,
            "has_intraday": self.has_intraday,
            "visible_plots_set": self.visible_plots_set,
            "has_weekly_and_monthly": self.has_weekly_and_monthly,
            "supported_resolutions": list(self.supported_resolutions),
            "volume_precision": self.volume_precision,
            "supports_search": self.supports_search,
            "data_status": self.data_status,
        }


@dataclass(frozen=True)
class SearchResult:
    """One symbol search hit."""

    symbol: str
    full_name: str
    description: str
    exchange: str = EXCHANGE_TAG
    ticker: str = ""
    type: str = SYMBOL_TYPE

    @classmethod
    def for_symbol(cls, symbol: str) -> SearchResult:
        return cls(
            symbol=symbol,
            full_name=symbol,
            description=f"Account {symbol}",
            ticker=symbol,
        )

    def to_record(self) -> dict[str, str]:
        return {
            "symbol": self.symbol,
            "full_name": self.full_name,
            "description": self.description,
            "exchange": self.exchange,
            "ticker": self.ticker,
            "type": self.type,
        }


@dataclass(frozen=True)
class Capabilities:
    """Capability record announced during the ready handshake."""

    supported_resolutions: tuple[str, ...] = SUPPORTED_RESOLUTIONS
    exchanges: tuple[dict[str, str], ...] = (
        {"value": EXCHANGE_TAG, "name": "Local Data", "desc": "Local Data"},
    )
    symbols_types: tuple[dict[str, str], ...] = (
        {"name": SYMBOL_TYPE, "value": SYMBOL_TYPE},
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "supported_resolutions": list(self.supported_resolutions),
            "exchanges": [dict(item) for item in self.exchanges],
            "symbols_types": [dict(item) for item in self.symbols_types],
        }


def normalize_resolution(value: str) -> str:
    """Map resolution aliases onto the protocol's fixed set.

    Unknown values pass through unchanged. Lowercase ``m`` is left alone
    since it conventionally means minutes.
    """
    text = value.strip()
    if text in SUPPORTED_RESOLUTIONS:
        return text
    if text in {"D", "W", "M"}:
        return f"1{text}"
    mapping = {
        "d": "1D",
        "1d": "1D",
        "day": "1D",
        "1day": "1D",
        "w": "1W",
        "1w": "1W",
        "week": "1W",
        "1week": "1W",
        "month": "1M",
        "1month": "1M",
    }
    return mapping.get(text.lower(), text)
