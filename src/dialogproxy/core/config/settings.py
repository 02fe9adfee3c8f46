from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_PORT = 3000
_DEFAULT_BACKEND_URL = "http://localhost:5005"
_DEFAULT_MODEL = "rasa-proxy"
_DEFAULT_TIMEOUT_S = 15.0
_DEFAULT_MAX_MESSAGE_LEN = 12000
_CONTENT_CONTRACTS = {"string", "object"}
_TRUTHY = {"on", "1", "true", "yes"}


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _is_on(name: str, default: str = "off") -> bool:
    return os.getenv(name, default).strip().casefold() in _TRUTHY


def _optional_env(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


@dataclass(frozen=True)
class ProxyConfig:
    port: int = _DEFAULT_PORT
    backend_url: str = _DEFAULT_BACKEND_URL
    local_llm_url: str | None = None
    default_model: str = _DEFAULT_MODEL
    debug: bool = False
    locale_correction: bool = False
    backend_timeout_s: float = _DEFAULT_TIMEOUT_S
    max_message_len: int = _DEFAULT_MAX_MESSAGE_LEN
    assistant_content: str = "string"
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        contract = os.getenv("DIALOGPROXY_ASSISTANT_CONTENT", "string").strip().casefold()
        if contract not in _CONTENT_CONTRACTS:
            contract = "string"
        return cls(
            port=_get_int_env("DIALOGPROXY_PORT", _DEFAULT_PORT),
            backend_url=os.getenv("DIALOGPROXY_BACKEND_URL", _DEFAULT_BACKEND_URL).strip().rstrip("/"),
            local_llm_url=_optional_env("DIALOGPROXY_LOCAL_LLM_URL"),
            default_model=os.getenv("DIALOGPROXY_DEFAULT_MODEL", _DEFAULT_MODEL).strip() or _DEFAULT_MODEL,
            debug=_is_on("DIALOGPROXY_DEBUG"),
            locale_correction=_is_on("DIALOGPROXY_LOCALE_CORRECTION"),
            backend_timeout_s=max(0.1, _get_float_env("DIALOGPROXY_BACKEND_TIMEOUT_S", _DEFAULT_TIMEOUT_S)),
            max_message_len=max(200, _get_int_env("DIALOGPROXY_MAX_MESSAGE_LEN", _DEFAULT_MAX_MESSAGE_LEN)),
            assistant_content=contract,
            api_key=_optional_env("DIALOGPROXY_API_KEY"),
        )

    @property
    def deliver_assistant_object(self) -> bool:
        return self.assistant_content == "object"
