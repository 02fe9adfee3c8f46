from __future__ import annotations

import re
from collections.abc import Mapping

_SENSITIVE_HEADERS = {"authorization", "x-api-key", "cookie", "proxy-authorization"}
_BEARER_RE = re.compile(r"(?i)(bearer\s+)([^\s]+)")

REDACTED = "[REDACTED]"


def redact_string(s: str) -> str:
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}***", s)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    output: dict[str, str] = {}
    for key, value in headers.items():
        if key.casefold() in _SENSITIVE_HEADERS:
            output[key] = REDACTED
        else:
            output[key] = redact_string(str(value))
    return output
