from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from .schemas import ChatMessage, Mode, ModeKind, Operation

IDENTITY_MARKER = "[Identity]"
TASK_MARKER = "[Task]"

# Checked in order; the first keyword found wins.
OPERATION_KEYWORDS: tuple[tuple[Operation, tuple[str, ...]], ...] = (
    (Operation.SUMMARIZE, ("summarize",)),
    (Operation.SHORTEN, ("shorten",)),
    (Operation.REPHRASE, ("rephrase",)),
    (Operation.MAKE_FRIENDLY, ("friendly",)),
    (Operation.MAKE_FORMAL, ("formal",)),
    (Operation.EXPAND, ("expand",)),
    (Operation.SIMPLIFY, ("simplify",)),
    (Operation.REPLY_SUGGESTION, ("reply_suggestion", "reply")),
    (Operation.LABEL_SUGGESTION, ("label_suggestion", "label")),
)


def _fragment_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("text", "content"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    return ""


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def flatten_content(content: Any) -> str:
    """Collapse message content (string, fragment list or object) to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [text for text in (_fragment_text(item) for item in content) if text]
        return " ".join(parts) if parts else _to_json(content)
    if isinstance(content, dict):
        text = _fragment_text(content)
        if text:
            return text
        nested = content.get("content")
        if isinstance(nested, list):
            parts = [item["text"] for item in nested if isinstance(item, dict) and isinstance(item.get("text"), str)]
            if parts:
                return " ".join(parts)
        return _to_json(content)
    return str(content)


def system_text(messages: Sequence[ChatMessage]) -> str:
    for message in messages:
        if message.role == "system":
            return flatten_content(message.content)
    return ""


def is_assistant_instruction(text: str) -> bool:
    return IDENTITY_MARKER in text and TASK_MARKER in text


def detect_operation(text: str) -> Operation | None:
    lowered = text.casefold()
    for operation, keywords in OPERATION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return operation
    return None


def classify(messages: Sequence[ChatMessage]) -> Mode:
    system = system_text(messages)
    if is_assistant_instruction(system):
        return Mode(kind=ModeKind.ASSISTANT)
    operation = detect_operation(system)
    if operation is not None:
        return Mode(kind=ModeKind.OPERATION, operation=operation)
    return Mode(kind=ModeKind.DEFAULT)
