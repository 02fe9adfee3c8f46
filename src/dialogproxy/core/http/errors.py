from __future__ import annotations


class ProxyHTTPError(RuntimeError):
    """Base error for outbound backend calls."""


class ProxyHTTPStatusError(ProxyHTTPError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProxyHTTPNetworkError(ProxyHTTPError):
    """Raised on transport failures and timeouts."""


class ProxyHTTPDecodeError(ProxyHTTPError):
    """Raised when a 2xx response body is not valid JSON."""
