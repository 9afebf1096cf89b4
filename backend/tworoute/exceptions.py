"""Exceptions raised by the transfer-route composition engine."""


class TwoRouteError(Exception):
    """Base exception for the transfer composer."""


class NoRouteFound(TwoRouteError):
    """Raised when every strategy came back empty for a request."""

    def __init__(self, message: str = "No valid route candidates found", failures: dict | None = None):
        super().__init__(message)
        self.failures = failures or {}


class TransportProviderError(TwoRouteError):
    """Raised when the transport-data provider fails or returns an unusable payload."""
