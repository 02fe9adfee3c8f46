from __future__ import annotations

import asyncio
import json
from uuid import UUID

import pytest

from dialogproxy.core.config import ProxyConfig
from dialogproxy.core.orchestration.orchestrator import NO_BACKEND_MESSAGE, Orchestrator
from dialogproxy.core.orchestration.schemas import (
    ChatCompletionRequest,
    DispatchAttempt,
    DispatchHints,
    DispatchOutcome,
    ModeKind,
)


class FakeDispatcher:
    def __init__(self, outcome: DispatchOutcome) -> None:
        self.outcome = outcome
        self.calls: list[tuple[str, DispatchHints]] = []

    async def dispatch(self, prompt: str, hints: DispatchHints) -> DispatchOutcome:
        self.calls.append((prompt, hints))
        return self.outcome

    async def aclose(self) -> None:
        return None


def _ok(payload: object) -> DispatchOutcome:
    return DispatchOutcome(ok=True, payload=payload, source="rest_webhook")


def _down() -> DispatchOutcome:
    return DispatchOutcome(ok=False, attempts=[DispatchAttempt(transport="model_parse", ok=False, error="refused")])


def _handle(payload: dict, outcome: DispatchOutcome, integration: bool = False, **config_overrides):
    dispatcher = FakeDispatcher(outcome)
    orchestrator = Orchestrator(ProxyConfig(**config_overrides), dispatcher=dispatcher)
    result = asyncio.run(orchestrator.handle(ChatCompletionRequest(**payload), integration=integration))
    return result, dispatcher


ASSISTANT_SYSTEM = "[Identity] Você é o Captain. [Task] summarize e responda."


def test_default_mode_all_backends_down_returns_apology_json() -> None:
    result, _ = _handle({"model": "m", "messages": [{"role": "user", "content": "hi"}]}, _down())

    content = result.envelope["choices"][0]["message"]["content"]
    decoded = json.loads(content)
    assert decoded["response"] == NO_BACKEND_MESSAGE
    assert decoded["stop"] is False
    assert result.envelope["model"] == "m"
    assert result.dispatch.ok is False


def test_default_mode_sends_last_user_message_with_generated_conversation() -> None:
    payload = {
        "model": "m",
        "messages": [
            {"role": "user", "content": "primeira"},
            {"role": "assistant", "content": "resposta"},
            {"role": "user", "content": "segunda"},
        ],
    }

    result, dispatcher = _handle(payload, _ok(["texto um", "texto dois"]))

    prompt, hints = dispatcher.calls[0]
    assert result.mode.kind is ModeKind.DEFAULT
    assert prompt == "segunda"
    assert hints.sender == "proxy-user"
    assert UUID(hints.conversation_id)
    assert json.loads(result.envelope["choices"][0]["message"]["content"]) == {
        "reasoning": "",
        "response": "texto um\n\ntexto dois",
        "stop": False,
    }


def test_default_mode_applies_locale_correction_when_enabled() -> None:
    payload = {"model": "m", "messages": [{"role": "user", "content": "vc  pode vir qnd?"}]}

    _, dispatcher = _handle(payload, _ok({"text": "ok"}), locale_correction=True)

    assert dispatcher.calls[0][0] == "você pode vir quando?"


def test_integration_flag_suppresses_locale_correction() -> None:
    payload = {"model": "m", "messages": [{"role": "user", "content": "vc pode vir qnd?"}]}

    _, dispatcher = _handle(payload, _ok({"text": "ok"}), integration=True, locale_correction=True)

    assert dispatcher.calls[0][0] == "vc pode vir qnd?"


def test_assistant_mode_uses_last_user_message_and_caller_conversation() -> None:
    payload = {
        "model": "captain",
        "messages": [
            {"role": "system", "content": ASSISTANT_SYSTEM},
            {"role": "user", "content": "vc tem cekin?"},
        ],
        "metadata": {"conversation_id": "conv-42", "inbox": 3},
    }

    result, dispatcher = _handle(
        payload,
        _ok({"response": "Sim, o cekin abre às 14h", "reply_suggestion": "Obrigado"}),
        locale_correction=True,
    )

    prompt, hints = dispatcher.calls[0]
    assert result.mode.kind is ModeKind.ASSISTANT
    assert prompt == "vc tem cekin?"
    assert hints.conversation_id == "conv-42"
    assert hints.sender == "assistant"
    assert hints.metadata == {"conversation_id": "conv-42", "inbox": 3}
    decoded = json.loads(result.envelope["choices"][0]["message"]["content"])
    assert decoded == {
        "reasoning": "",
        "response": "Sim, o check-in abre às 14h",
        "stop": False,
        "label": "",
        "reply_suggestions": ["Obrigado"],
        "sources": [],
        "metadata": {"intent": None, "entities": [], "tags": None, "areas": None},
    }


def test_assistant_mode_object_contract_returns_structured_content() -> None:
    payload = {
        "model": "captain",
        "messages": [{"role": "system", "content": ASSISTANT_SYSTEM}, {"role": "user", "content": "oi"}],
        "conversation_id": "c-1",
    }

    result, dispatcher = _handle(payload, _down(), assistant_content="object")

    assert dispatcher.calls[0][1].conversation_id == "c-1"
    content = result.envelope["choices"][0]["message"]["content"]
    assert isinstance(content, dict)
    assert content["response"] == NO_BACKEND_MESSAGE
    assert content["reply_suggestions"] == []


def test_operation_mode_prompt_carries_operation_tag_and_transcript() -> None:
    payload = {
        "model": "m",
        "messages": [
            {"role": "system", "content": "summarize"},
            {"role": "user", "content": "O cliente quer cancelar a reserva"},
            {"role": "assistant", "content": [{"type": "text", "text": "Entendido"}]},
        ],
    }

    result, dispatcher = _handle(payload, _ok({"output": "Cliente cancela reserva."}))

    prompt, hints = dispatcher.calls[0]
    assert result.mode.kind is ModeKind.OPERATION
    assert prompt == (
        "OPERATION: summarize\n\n"
        "[USER]\nO cliente quer cancelar a reserva\n\n"
        '[ASSISTANT]\n[{"type": "text", "text": "Entendido"}]'
    )
    assert hints.conversation_id is None
    assert json.loads(result.envelope["choices"][0]["message"]["content"])["response"] == "Cliente cancela reserva."


def test_long_prompts_are_truncated() -> None:
    payload = {"model": "m", "messages": [{"role": "user", "content": "a" * 1000}]}

    _, dispatcher = _handle(payload, _ok({"text": "ok"}), max_message_len=300)

    assert dispatcher.calls[0][0].endswith("... [truncated]")
    assert len(dispatcher.calls[0][0]) == 200 + len("\n\n... [truncated]")


@pytest.mark.parametrize(
    ("system", "tag"),
    [("make it friendly", "friendly"), ("make it formal", "formal"), ("please shorten", "shorten")],
)
def test_operation_tag_uses_backend_names(system: str, tag: str) -> None:
    payload = {"model": "m", "messages": [{"role": "system", "content": system}, {"role": "user", "content": "x"}]}

    _, dispatcher = _handle(payload, _ok({"text": "ok"}))

    assert dispatcher.calls[0][0] == f"OPERATION: {tag}\n\n[USER]\nx"


def test_blank_model_name_falls_back_to_configured_default() -> None:
    blank = {"model": "   ", "messages": [{"role": "user", "content": "hi"}]}
    padded = {"model": " captain ", "messages": [{"role": "user", "content": "hi"}]}

    blank_result, _ = _handle(blank, _ok({"text": "ok"}), default_model="rasa-proxy")
    padded_result, _ = _handle(padded, _ok({"text": "ok"}))

    assert blank_result.envelope["model"] == "rasa-proxy"
    assert padded_result.model == "captain"
