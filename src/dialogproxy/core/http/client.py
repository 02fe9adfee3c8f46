from __future__ import annotations

import asyncio
from typing import Any

import httpx

from .errors import ProxyHTTPDecodeError, ProxyHTTPNetworkError, ProxyHTTPStatusError

_DEFAULT_TIMEOUT_S = 15.0
_DEFAULT_CONNECT_TIMEOUT_S = 5.0
_DEFAULT_USER_AGENT = "dialogproxy/1.0"


def build_timeout(total_s: float | None = None) -> httpx.Timeout:
    read_total = max(0.1, total_s if total_s is not None else _DEFAULT_TIMEOUT_S)
    return httpx.Timeout(read_total, connect=min(_DEFAULT_CONNECT_TIMEOUT_S, read_total))


def build_async_client(timeout_s: float | None = None, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=build_timeout(timeout_s),
        headers={"User-Agent": _DEFAULT_USER_AGENT},
        transport=transport,
    )


def _safe_url(url: str, redact_url: bool) -> str:
    if redact_url:
        return "[redacted-url]"
    return url


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
    *,
    timeout_s: float | None = None,
    redact_url: bool = False,
) -> Any:
    """POST ``payload`` and return the decoded JSON body.

    The whole call, including reading the body, is cancelled once
    ``timeout_s`` elapses.
    """
    safe_url = _safe_url(url, redact_url)
    total_s = max(0.1, timeout_s if timeout_s is not None else _DEFAULT_TIMEOUT_S)

    try:
        response = await asyncio.wait_for(
            client.post(url, json=payload, timeout=build_timeout(total_s)),
            timeout=total_s,
        )
    except asyncio.TimeoutError as exc:
        raise ProxyHTTPNetworkError(f"HTTP request timed out after {total_s:g}s for {safe_url}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ProxyHTTPNetworkError(f"HTTP request error for {safe_url}: {exc.__class__.__name__}") from exc

    status = response.status_code
    if not 200 <= status < 300:
        raise ProxyHTTPStatusError(f"HTTP status {status} for {safe_url}", status_code=status)

    try:
        return response.json()
    except ValueError as exc:
        raise ProxyHTTPDecodeError(f"Invalid JSON body from {safe_url}") from exc
