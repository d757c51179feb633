"""Environment and CLI runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Self

from dotenv import load_dotenv

from chartfeed.errors import ConfigError

DEFAULT_LIBRARY_URLS = [
    "/charting_library/charting_library.js",
    "https://sb.stanli.ai/charting_library/charting_library.js",
]


def parse_optional_positive_int(value: str | None, *, field_name: str) -> int | None:
    """Parse optional positive integer values from env strings."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    parsed = int(text)
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return parsed


def parse_list(value: str | None, default: list[str] | None = None) -> list[str]:
    """Parse comma-separated values, preserving case and order."""
    fallback = list(default or [])
    if not value:
        return fallback
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or fallback


def normalize_data_source(value: str | None, default: str = "http") -> str:
    """Normalize backend selector values."""
    mapping = {
        "http": "http",
        "api": "http",
        "remote": "http",
        "csv": "csv",
        "replay": "csv",
        "local": "csv",
    }
    if value is None:
        return default
    candidate = value.strip().lower()
    return mapping.get(candidate, candidate)


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    data_source: str = "http"
    base_url: str = "http://localhost:8000/api"
    account_type: str | None = None
    data_dir: str = "historical_data"
    resolution: str = "1D"
    preflight_lookback_days: int = 30
    request_timeout: int = 20
    max_retries: int = 3
    library_path: str = "/charting_library/"
    library_urls: list[str] = field(default_factory=lambda: list(DEFAULT_LIBRARY_URLS))
    timezone: str = "Etc/UTC"
    log_level: str = "INFO"
    log_file: str | None = None
    events_path: str | None = None
    events_max_bytes: int | None = None

    @classmethod
    def from_env(cls) -> Self:
        """Create settings from environment variables."""
        load_dotenv()
        try:
            raw = cls(
                data_source=normalize_data_source(os.getenv("CHARTFEED_DATA_SOURCE")),
                base_url=str(
                    os.getenv("CHARTFEED_BASE_URL", "http://localhost:8000/api")
                ).strip(),
                account_type=str(os.getenv("CHARTFEED_ACCOUNT_TYPE", "")).strip() or None,
                data_dir=str(os.getenv("CHARTFEED_DATA_DIR", "historical_data")).strip(),
                resolution=str(os.getenv("CHARTFEED_RESOLUTION", "1D")).strip(),
                preflight_lookback_days=parse_optional_positive_int(
                    os.getenv("CHARTFEED_PREFLIGHT_DAYS"),
                    field_name="preflight_lookback_days",
                )
                or 30,
                request_timeout=int(os.getenv("CHARTFEED_TIMEOUT", "20")),
                max_retries=int(os.getenv("CHARTFEED_MAX_RETRIES", "3")),
                library_path=str(
                    os.getenv("CHARTFEED_LIBRARY_PATH", "/charting_library/")
                ).strip(),
                library_urls=parse_list(
                    os.getenv("CHARTFEED_LIBRARY_URLS"),
                    default=DEFAULT_LIBRARY_URLS,
                ),
                timezone=str(os.getenv("CHARTFEED_TIMEZONE", "Etc/UTC")).strip(),
                log_level=str(os.getenv("LOG_LEVEL", "INFO")).strip().upper(),
                log_file=str(os.getenv("LOG_FILE", "")).strip() or None,
                events_path=str(os.getenv("CHARTFEED_EVENTS_PATH", "")).strip() or None,
                events_max_bytes=parse_optional_positive_int(
                    os.getenv("CHARTFEED_EVENTS_MAX_BYTES"),
                    field_name="events_max_bytes",
                ),
            )
        except ValueError as exc:
            raise ConfigError(
                "One or more numeric environment variables are invalid. "
                "Check CHARTFEED_TIMEOUT, CHARTFEED_MAX_RETRIES and CHARTFEED_PREFLIGHT_DAYS."
            ) from exc
        return raw.validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        overrides = dict(kwargs)
        source_override = overrides.get("data_source")
        if isinstance(source_override, str):
            overrides["data_source"] = normalize_data_source(source_override)
        updated = replace(self, **overrides)
        return updated.validate()

    def validate(self) -> Self:
        """Validate settings fields."""
        if self.data_source not in {"http", "csv"}:
            raise ConfigError("data_source must be one of http, csv")
        if self.data_source == "http" and not self.base_url:
            raise ConfigError("base_url is required for the http data source")
        if self.data_source == "csv" and not self.data_dir:
            raise ConfigError("data_dir is required for the csv data source")
        if self.preflight_lookback_days <= 0:
            raise ConfigError("preflight_lookback_days must be positive")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if self.max_retries <= 0:
            raise ConfigError("max_retries must be positive")
        if not self.library_urls:
            raise ConfigError("library_urls must list at least one source")
        if not self.resolution.strip():
            raise ConfigError("resolution must not be empty")
        if self.events_max_bytes is not None and self.events_max_bytes <= 0:
            raise ConfigError("events_max_bytes must be positive")
        return self
