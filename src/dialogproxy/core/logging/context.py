from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(name, default=None) for name in ("correlation_id", "conversation_id", "mode")
}


@contextmanager
def log_context(
    correlation_id: str | None = None,
    conversation_id: str | None = None,
    mode: str | None = None,
) -> Iterator[None]:
    """Bind request fields for every log line emitted inside the block.

    ``None`` leaves an outer binding in place, so the orchestrator can add the
    conversation and mode under the middleware's correlation id.
    """
    values = {"correlation_id": correlation_id, "conversation_id": conversation_id, "mode": mode}
    tokens = [(_CONTEXT_VARS[key], _CONTEXT_VARS[key].set(value)) for key, value in values.items() if value is not None]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def get_log_context() -> dict[str, str]:
    values = {key: var.get() for key, var in _CONTEXT_VARS.items()}
    return {key: value for key, value in values.items() if value is not None}
