from .client import build_async_client, post_json
from .errors import ProxyHTTPDecodeError, ProxyHTTPError, ProxyHTTPNetworkError, ProxyHTTPStatusError

__all__ = [
    "build_async_client",
    "post_json",
    "ProxyHTTPError",
    "ProxyHTTPStatusError",
    "ProxyHTTPNetworkError",
    "ProxyHTTPDecodeError",
]
