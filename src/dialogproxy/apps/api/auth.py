from __future__ import annotations

import hmac

from fastapi import Request

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "
PROTECTED_PREFIX = "/v1"


def extract_token(request: Request) -> str | None:
    header = request.headers.get(AUTH_HEADER, "")
    if header.startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        return token or None
    return None


def is_request_authenticated(request: Request, api_key: str | None) -> bool:
    if not api_key:
        return True
    provided = extract_token(request)
    if not provided:
        return False
    return hmac.compare_digest(provided, api_key)


def requires_auth(path: str) -> bool:
    return path.startswith(PROTECTED_PREFIX)
