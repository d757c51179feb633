"""Custom exceptions for clearer error handling across the datafeed."""


class ChartfeedError(Exception):
    """Base exception for all chartfeed errors."""


class ConfigError(ChartfeedError):
    """Raised when environment configuration is invalid or missing."""


class BackendError(ChartfeedError):
    """Raised when a backend collaborator request fails."""


class NoAccountsAvailable(ChartfeedError):
    """Raised when no account identifier exists to chart."""


class NoInitialData(ChartfeedError):
    """Raised when the pre-flight check finds no bars for the chosen symbol."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"No initial data available for {symbol}")
        self.symbol = symbol


class SearchBackendFailure(ChartfeedError):
    """Raised internally when symbol search cannot reach the backend."""


class BarFetchFailure(ChartfeedError):
    """Raised when a history request fails in transport or parsing."""


class WidgetConstructionFailure(ChartfeedError):
    """Raised when the charting widget cannot be built."""


class LibraryLoadError(ChartfeedError):
    """Raised when no charting library source could be loaded."""
