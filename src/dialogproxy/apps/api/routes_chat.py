from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from dialogproxy.core.orchestration.orchestrator import Orchestrator
from dialogproxy.core.orchestration.schemas import ChatCompletionRequest

from .deps import get_orchestrator

INTEGRATION_HEADER = "X-Copilot-Threads"
_TRUTHY = {"1", "true", "yes"}

router = APIRouter()
logger = logging.getLogger("dialogproxy.api.chat")


def is_truthy_flag(value: str | None) -> bool:
    return (value or "").strip().casefold() in _TRUTHY


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": {"message": "internal_error", "type": "internal_error"}},
    )


@router.post("/chat/completions")
async def chat_completions(
    payload: ChatCompletionRequest,
    request: Request,
    copilot: str | None = Query(default=None),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    integration = is_truthy_flag(request.headers.get(INTEGRATION_HEADER)) or is_truthy_flag(copilot)
    try:
        result = await orchestrator.handle(payload, integration=integration)
    except Exception:
        logger.exception("Failed to process chat completion")
        return internal_error_response()

    logger.info(
        "Chat completion served",
        extra={
            "extra_fields": {
                "mode": result.mode.label,
                "model": result.model,
                "source": result.dispatch.source,
                "dispatch_ok": result.dispatch.ok,
                "integration": integration,
            }
        },
    )
    if payload.stream:
        return StreamingResponse(
            orchestrator.envelope_builder.stream_chunks(result.envelope),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )
    return result.envelope
