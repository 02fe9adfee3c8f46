from __future__ import annotations

import json
import logging
from typing import Any
from uuid import uuid4

from dialogproxy.core.config import ProxyConfig
from dialogproxy.core.logging.context import log_context

from .classifier import classify, flatten_content
from .dispatcher import BackendDispatcher
from .envelope import EnvelopeBuilder
from .normalizer import normalize
from .schemas import (
    CanonicalResult,
    ChatCompletionRequest,
    ChatMessage,
    DispatchHints,
    DispatchOutcome,
    Mode,
    ModeKind,
    Operation,
    RequestResult,
)
from .textfix import correct_prompt_text, truncate_text

NO_BACKEND_MESSAGE = "Desculpe, não foi possível obter uma resposta do sistema de NLU/LLM."
ASSISTANT_SENDER = "assistant"
DEFAULT_SENDER = "proxy-user"

# Operation tags as the dialogue backend expects them on the prompt line.
OPERATION_WIRE_NAMES = {
    Operation.MAKE_FRIENDLY: "friendly",
    Operation.MAKE_FORMAL: "formal",
}


def last_user_text(messages: list[ChatMessage]) -> str | None:
    for message in reversed(messages):
        if message.role == "user":
            return flatten_content(message.content)
    return None


def join_messages(messages: list[ChatMessage]) -> str:
    blocks = []
    for message in messages:
        content = message.content if isinstance(message.content, str) else json.dumps(message.content, ensure_ascii=False)
        blocks.append(f"[{message.role.upper()}]\n{content}")
    return "\n\n".join(blocks)


class Orchestrator:
    """Runs one request through classify, dispatch, normalize and envelope."""

    def __init__(
        self,
        config: ProxyConfig,
        dispatcher: BackendDispatcher | None = None,
        envelope_builder: EnvelopeBuilder | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or BackendDispatcher(config)
        self.envelope_builder = envelope_builder or EnvelopeBuilder(deliver_objects=config.deliver_assistant_object)
        self.logger = logging.getLogger("dialogproxy.orchestrator")

    def _transition(self, state: str, **fields: Any) -> None:
        self.logger.debug("Request %s", state, extra={"extra_fields": {"state": state, **fields}})

    def _prepare_user_text(self, text: str, correct: bool) -> str:
        if correct:
            text = correct_prompt_text(text)
        return truncate_text(text, self.config.max_message_len)

    def build_prompt(self, request: ChatCompletionRequest, mode: Mode, integration: bool = False) -> tuple[str, DispatchHints]:
        messages = list(request.messages)
        metadata = dict(request.metadata or {})
        correct = self.config.locale_correction and mode.kind is not ModeKind.ASSISTANT and not integration

        if mode.kind is ModeKind.ASSISTANT:
            user_text = last_user_text(messages)
            if user_text is None:
                user_text = flatten_content(messages[-1].content)
            conversation_id = request.conversation_id or metadata.get("conversation_id") or str(uuid4())
            hints = DispatchHints(
                sender=ASSISTANT_SENDER,
                conversation_id=str(conversation_id),
                metadata=metadata,
            )
            return self._prepare_user_text(user_text, correct), hints

        transcript = join_messages([message for message in messages if message.role != "system"])
        if mode.kind is ModeKind.OPERATION and mode.operation is not None:
            tag = OPERATION_WIRE_NAMES.get(mode.operation, mode.operation.value)
            prompt = f"OPERATION: {tag}\n\n{transcript}"
            hints = DispatchHints(
                sender=ASSISTANT_SENDER,
                conversation_id=request.conversation_id,
                metadata=metadata,
            )
            return truncate_text(prompt, self.config.max_message_len), hints

        user_text = last_user_text(messages)
        if user_text is None:
            user_text = transcript
        hints = DispatchHints(
            sender=DEFAULT_SENDER,
            conversation_id=request.conversation_id or str(uuid4()),
            metadata=metadata,
        )
        return self._prepare_user_text(user_text, correct), hints

    def normalize_outcome(self, outcome: DispatchOutcome, mode: Mode) -> CanonicalResult:
        hints = {"source": outcome.source, "mode": mode.label}
        if not outcome.ok:
            return normalize({"response": NO_BACKEND_MESSAGE}, hints)
        return normalize(outcome.payload, hints)

    async def handle(self, request: ChatCompletionRequest, integration: bool = False) -> RequestResult:
        self._transition("received", messages=len(request.messages))
        mode = classify(request.messages)
        model = request.model or self.config.default_model
        self._transition("classified", mode=mode.label, integration=integration)

        prompt, hints = self.build_prompt(request, mode, integration=integration)
        with log_context(conversation_id=hints.conversation_id, mode=mode.label):
            self._transition("dispatching", sender=hints.sender)
            outcome = await self.dispatcher.dispatch(prompt, hints)

            self._transition("normalizing", ok=outcome.ok, source=outcome.source)
            canonical = self.normalize_outcome(outcome, mode)

            structured = mode.kind is ModeKind.ASSISTANT
            content: str | dict[str, Any]
            if structured:
                content = canonical.as_assistant_payload()
            else:
                content = canonical.as_text_payload()
            envelope = self.envelope_builder.build(content, model, structured=structured)
            self._transition("enveloped", completion_id=envelope["id"])

        return RequestResult(
            mode=mode,
            model=model,
            content=content,
            canonical=canonical,
            dispatch=outcome,
            envelope=envelope,
        )
