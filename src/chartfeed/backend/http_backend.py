"""HTTP charting backend."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from time import sleep
from typing import Any

import requests

from chartfeed.domain.models import BarRow, BarRows
from chartfeed.errors import BackendError


class HttpChartingBackend:
    """Fetch account identifiers and bar rows from the charting API."""

    accounts_path = "/dropdown/values"
    bars_path = "/charting/data"

    def __init__(
        self,
        base_url: str,
        account_type: str | None = None,
        preflight_lookback_days: int = 30,
        timeout: int = 20,
        max_retries: int = 3,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.account_type = account_type
        self.preflight_lookback_days = preflight_lookback_days
        self.timeout = timeout
        self.max_retries = max_retries
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def close(self) -> None:
        """Release pooled connections held by a session this backend created."""
        if self._owns_session:
            self.session.close()

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
        now = datetime.now(tz=UTC)
        start = now - timedelta(days=self.preflight_lookback_days)
        rows = await self.fetch_bar_rows(symbol, int(start.timestamp()), int(now.timestamp()), "1D")
        return bool(rows.rows)

    def _list_account_identifiers(self) -> list[str]:
        parameters: list[dict[str, str]] = []
        if self.account_type:
            parameters.append(
                {
                    "columnName": "accounts.account_type",
                    "condition": "=",
                    "value": self.account_type,
                }
            )
        payload = self._request_with_retry(
            "POST",
            self.accounts_path,
            json={
                "entity_type": "accounts",
                "columns": ["accounts.account_no"],
                "parameter": parameters,
            },
        )
        items = payload.get("list") or []
        if not isinstance(items, list):
            raise BackendError("Account listing payload is not a list")
        identifiers: list[str] = []
        for item in items:
            if isinstance(item, dict) and item.get("account_no"):
                identifiers.append(str(item["account_no"]))
            elif isinstance(item, str) and item:
                identifiers.append(item)
        return identifiers

    def _fetch_bar_rows(
        self,
        symbol: str,
        from_inclusive: int,
        to_inclusive: int,
        resolution: str,
    ) -> BarRows:
        payload = self._request_with_retry(
            "GET",
            self.bars_path,
            params={
                "symbol": symbol,
                "from": str(from_inclusive),
                "to": str(to_inclusive),
                "resolution": resolution,
            },
        )
        return self._payload_to_rows(symbol, payload)

    @staticmethod
    def _payload_to_rows(symbol: str, payload: dict[str, Any]) -> BarRows:
        data = payload.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise BackendError(f"{symbol}: bar payload 'data' is not a list")
        try:
            rows = [BarRow.from_record(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"{symbol}: bar payload missing OHLCV fields") from exc
        next_time = payload.get("nextTime")
        return BarRows(rows=rows, next_time=None if next_time is None else int(next_time))

    def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> dict:
        url = f"{self.base_url}{path}"
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                if attempt == self.max_retries:
                    raise BackendError(f"Charting request failed: {exc}") from exc
                sleep(float(attempt))
                continue
            if response.status_code == 429:
                if attempt == self.max_retries:
                    raise BackendError("Charting API rate limit exceeded")
                sleep(float(attempt))
                continue
            if response.status_code >= 500:
                if attempt == self.max_retries:
                    raise BackendError(f"Charting API server error: {response.status_code}")
                sleep(float(attempt))
                continue
            if response.status_code >= 400:
                detail = response.text.strip() or "No response body"
                raise BackendError(f"Charting API error {response.status_code}: {detail}")
            try:
                payload = response.json()
            except ValueError as exc:
                raise BackendError(f"Charting API returned invalid JSON from {path}") from exc
            if not isinstance(payload, dict):
                raise BackendError(f"Charting API returned unexpected payload from {path}")
            return payload
        raise BackendError("Charting request exhausted retries")
