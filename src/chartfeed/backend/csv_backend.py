"""CSV-backed replay charting backend."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pandas as pd

from chartfeed.domain.models import BarRow, BarRows
from chartfeed.errors import BackendError

_EPOCH = pd.Timestamp(0, tz="UTC")
_ONE_SECOND = pd.Timedelta(seconds=1)


class CsvChartingBackend:
    """Serve account histories from local CSV files, one file per account."""

    date_column_candidates = ("date", "datetime", "timestamp")
    resample_rules = {
        "1D": {"rule": "D"},
        "1W": {"rule": "W-MON", "closed": "left", "label": "left"},
        "1M": {"rule": "MS"},
    }

    def __init__(self, data_dir: str) -> None:
        self.data_dir = Path(data_dir)
        self._bars_cache: dict[str, pd.DataFrame] = {}

    def close(self) -> None:
        self._bars_cache.clear()

    async def list_account_identifiers(self) -> list[str]:
        return await asyncio.to_thread(self._list_account_identifiers)

    async def fetch_bar_rows(
        self,
        symbol: str,
        from_inclusive: int,
        to_inclusive: int,
        resolution: str,
    ) -> BarRows:
        return await asyncio.to_thread(
            self._fetch_bar_rows,
            symbol,
            from_inclusive,
            to_inclusive,
            resolution,
        )

    async def fetch_initial_data_available(self, symbol: str) -> bool:
        return await asyncio.to_thread(self._has_rows, symbol)

    def _list_account_identifiers(self) -> list[str]:
        if not self.data_dir.is_dir():
            raise BackendError(f"CSV data directory not found: {self.data_dir}")
        return sorted(path.stem for path in self.data_dir.glob("*.csv"))

    def _has_rows(self, symbol: str) -> bool:
        if self._resolve_path(symbol) is None:
            return False
        return not self._load_bars(symbol).empty

    def _fetch_bar_rows(
        self,
        symbol: str,
        from_inclusive: int,
        to_inclusive: int,
        resolution: str,
    ) -> BarRows:
        bars = self._resample(self._load_bars(symbol), resolution, symbol)
        start = pd.Timestamp(from_inclusive, unit="s", tz="UTC")
        end = pd.Timestamp(to_inclusive, unit="s", tz="UTC")
        window = bars.loc[(bars.index >= start) & (bars.index <= end)]
        if window.empty:
            earlier = bars.loc[bars.index < start]
            next_time = None if earlier.empty else self._to_seconds(earlier.index)[-1]
            return BarRows(rows=[], next_time=next_time)

        seconds = self._to_seconds(window.index)
        rows = [
            BarRow(
                timestamp=timestamp,
                open=float(record.open),
                high=float(record.high),
                low=float(record.low),
                close=float(record.close),
                volume=float(record.volume),
            )
            for timestamp, record in zip(seconds, window.itertuples(index=False))
        ]
        return BarRows(rows=rows, next_time=None)

    def _resample(self, bars: pd.DataFrame, resolution: str, symbol: str) -> pd.DataFrame:
        options = self.resample_rules.get(resolution)
        if options is None:
            raise BackendError(f"{symbol}: unsupported resolution '{resolution}'")
        rule = options["rule"]
        kwargs = {key: value for key, value in options.items() if key != "rule"}
        resampled = bars.resample(rule, **kwargs).agg(
            {
                "open": "first",
                "high": "max",
                "low": "min",
                "close": "last",
                "volume": "sum",
            }
        )
        return resampled.dropna(subset=["open", "high", "low", "close"])

    def _load_bars(self, symbol: str) -> pd.DataFrame:
        cached = self._bars_cache.get(symbol)
        if cached is not None:
            return cached

        path = self._resolve_path(symbol)
        if path is None:
            raise BackendError(f"No CSV found for {symbol} under {self.data_dir}")
        try:
            frame = pd.read_csv(path)
            normalized = self._normalize_csv(frame, symbol)
        except (ValueError, pd.errors.ParserError) as exc:
            raise BackendError(f"{symbol}: unreadable CSV {path.name}: {exc}") from exc
        self._bars_cache[symbol] = normalized
        return normalized

    def _resolve_path(self, symbol: str) -> Path | None:
        value = symbol.strip()
        candidates = [
            self.data_dir / f"{value}.csv",
            self.data_dir / f"{value.upper()}.csv",
            self.data_dir / f"{value.lower()}.csv",
        ]
        seen: set[Path] = set()
        for candidate in candidates:
            if candidate in seen:
                continue
            seen.add(candidate)
            if candidate.exists():
                return candidate
        return None

    def _normalize_csv(self, frame: pd.DataFrame, symbol: str) -> pd.DataFrame:
        lower_to_original = {column.strip().lower(): column for column in frame.columns}
        date_column = self._pick_date_column(lower_to_original)
        rename_map = self._build_ohlcv_rename_map(lower_to_original, symbol)
        normalized = frame.rename(columns=rename_map)
        raw_dates = normalized[date_column]
        if pd.api.types.is_numeric_dtype(raw_dates):
            normalized.index = pd.to_datetime(raw_dates, unit="s", utc=True)
        else:
            normalized.index = pd.to_datetime(raw_dates, utc=True)
        normalized = normalized.sort_index()
        normalized = normalized[["open", "high", "low", "close", "volume"]].copy()
        normalized = normalized.apply(pd.to_numeric, errors="coerce")
        normalized = normalized.dropna(subset=["open", "high", "low", "close"])
        normalized["volume"] = normalized["volume"].fillna(0.0)
        return normalized

    def _pick_date_column(self, lower_to_original: dict[str, str]) -> str:
        for candidate in self.date_column_candidates:
            if candidate in lower_to_original:
                return lower_to_original[candidate]
        candidates = ", ".join(self.date_column_candidates)
        raise ValueError(f"CSV missing date column. Expected one of: {candidates}")

    @staticmethod
    def _build_ohlcv_rename_map(
        lower_to_original: dict[str, str],
        symbol: str,
    ) -> dict[str, str]:
        rename_map: dict[str, str] = {}
        for name in ("open", "high", "low", "close", "volume"):
            source = lower_to_original.get(name)
            if source is None:
                raise ValueError(f"{symbol}: CSV missing required column '{name}'")
            rename_map[source] = name
        return rename_map

    @staticmethod
    def _to_seconds(index: pd.DatetimeIndex) -> list[int]:
        return [int(value) for value in (index - _EPOCH) // _ONE_SECOND]
