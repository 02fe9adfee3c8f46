from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

import httpx

from dialogproxy.core.config import ProxyConfig
from dialogproxy.core.http import ProxyHTTPError, build_async_client, post_json

from .schemas import DispatchAttempt, DispatchHints, DispatchOutcome
from .textfix import truncate_text

LOCAL_LLM = "local_llm"
CONVERSATION_PARSE = "conversation_parse"
MODEL_PARSE = "model_parse"
REST_WEBHOOK = "rest_webhook"

_LOG_TEXT_LIMIT = 500

Transport = Callable[[str, DispatchHints], Awaitable[Any]]


class BackendDispatcher:
    """Tries each backend transport in order until one returns JSON."""

    def __init__(self, config: ProxyConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.base_url = config.backend_url.rstrip("/")
        self.timeout_s = config.backend_timeout_s
        self.client = client or build_async_client(timeout_s=config.backend_timeout_s)
        self.logger = logging.getLogger("dialogproxy.dispatcher")

    async def aclose(self) -> None:
        await self.client.aclose()

    def transports(self, hints: DispatchHints) -> list[tuple[str, Transport]]:
        chain: list[tuple[str, Transport]] = []
        if self.config.local_llm_url:
            chain.append((LOCAL_LLM, self._call_local_llm))
        if hints.conversation_id and not hints.parse_only:
            chain.append((CONVERSATION_PARSE, self._call_conversation_parse))
        chain.append((MODEL_PARSE, self._call_model_parse))
        chain.append((REST_WEBHOOK, self._call_rest_webhook))
        return chain

    async def dispatch(self, prompt: str, hints: DispatchHints | None = None) -> DispatchOutcome:
        hints = hints or DispatchHints()
        outcome = DispatchOutcome(ok=False)

        for name, call in self.transports(hints):
            self.logger.debug(
                "Calling backend",
                extra={"extra_fields": {"transport": name, "text": truncate_text(prompt, _LOG_TEXT_LIMIT)}},
            )
            try:
                payload = await call(prompt, hints)
            except ProxyHTTPError as exc:
                self.logger.warning(
                    "Backend attempt failed",
                    extra={"extra_fields": {"transport": name, "error": str(exc)}},
                )
                outcome.attempts.append(DispatchAttempt(transport=name, ok=False, error=str(exc)))
                continue

            outcome.attempts.append(DispatchAttempt(transport=name, ok=True, payload=payload))
            outcome.ok = True
            outcome.payload = payload
            outcome.source = name
            return outcome

        self.logger.warning(
            "All backend transports failed",
            extra={"extra_fields": {"attempted": [attempt.transport for attempt in outcome.attempts]}},
        )
        return outcome

    async def _post(self, url: str, payload: dict[str, Any]) -> Any:
        return await post_json(self.client, url, payload, timeout_s=self.timeout_s)

    async def _call_local_llm(self, prompt: str, hints: DispatchHints) -> Any:
        return await self._post(str(self.config.local_llm_url), {"prompt": prompt})

    async def _call_conversation_parse(self, prompt: str, hints: DispatchHints) -> Any:
        conversation = quote(str(hints.conversation_id), safe="")
        url = f"{self.base_url}/conversations/{conversation}/parse"
        return await self._post(url, {"text": prompt, "metadata": dict(hints.metadata)})

    async def _call_model_parse(self, prompt: str, hints: DispatchHints) -> Any:
        return await self._post(f"{self.base_url}/model/parse", {"text": prompt})

    async def _call_rest_webhook(self, prompt: str, hints: DispatchHints) -> Any:
        url = f"{self.base_url}/webhooks/rest/webhook"
        return await self._post(url, {"sender": hints.sender, "message": prompt})
