from __future__ import annotations

import logging
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dialogproxy.core.logging import configure_logging, redact_headers
from dialogproxy.core.logging.context import log_context

from .auth import is_request_authenticated, requires_auth
from .deps import get_config, get_orchestrator
from .routes_chat import router as chat_router

SERVICE_VERSION = "dialogproxy-1.0"

logger = logging.getLogger("dialogproxy.api")

app = FastAPI(title="dialogproxy", version=SERVICE_VERSION)
configure_logging(debug=get_config().debug)

app.include_router(chat_router, prefix="/v1", tags=["chat"])


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.info("Rejected invalid request", extra={"extra_fields": {"path": request.url.path, "error": message}})
    return JSONResponse(
        status_code=400,
        content={"error": {"message": message, "type": "invalid_request_error"}},
    )


@app.middleware("http")
async def auth_middleware(request, call_next):
    if requires_auth(request.url.path) and not is_request_authenticated(request, get_config().api_key):
        return JSONResponse(
            status_code=401,
            content={"error": {"message": "Unauthorized", "type": "authentication_error"}},
        )
    return await call_next(request)


@app.middleware("http")
async def request_context_middleware(request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id):
        logger.debug(
            "Incoming request",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "headers": redact_headers(request.headers),
                }
            },
        )
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.on_event("shutdown")
async def shutdown() -> None:
    if get_orchestrator.cache_info().currsize:
        await get_orchestrator().dispatcher.aclose()
        get_orchestrator.cache_clear()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": SERVICE_VERSION}


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


def run() -> None:
    config = get_config()
    logger.info(
        "dialogproxy listening",
        extra={
            "extra_fields": {
                "port": config.port,
                "backend_url": config.backend_url,
                "local_llm": bool(config.local_llm_url),
                "debug": config.debug,
            }
        },
    )
    uvicorn.run("dialogproxy.apps.api.main:app", host="0.0.0.0", port=config.port)
