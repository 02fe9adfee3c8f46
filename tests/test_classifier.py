from __future__ import annotations

from dialogproxy.core.orchestration.classifier import classify, detect_operation, flatten_content
from dialogproxy.core.orchestration.schemas import ChatMessage, ModeKind, Operation


def _messages(system: object | None, user: str = "O cliente quer cancelar a reserva") -> list[ChatMessage]:
    messages = []
    if system is not None:
        messages.append(ChatMessage(role="system", content=system))
    messages.append(ChatMessage(role="user", content=user))
    return messages


def test_no_system_message_is_default_mode() -> None:
    mode = classify(_messages(None))

    assert mode.kind is ModeKind.DEFAULT
    assert mode.operation is None


def test_both_markers_select_assistant_mode() -> None:
    mode = classify(_messages("[Identity] Você é o Captain. [Task] Responda ao cliente."))

    assert mode.kind is ModeKind.ASSISTANT


def test_identity_marker_alone_is_not_assistant_mode() -> None:
    assert classify(_messages("[Identity] You are Captain.")).kind is ModeKind.DEFAULT
    assert classify(_messages("[Identity] You are Captain. Please summarize.")).kind is ModeKind.OPERATION


def test_markers_are_case_sensitive() -> None:
    assert classify(_messages("[identity] you are captain. [task] answer.")).kind is ModeKind.DEFAULT


def test_assistant_mode_takes_precedence_over_operation_keywords() -> None:
    mode = classify(_messages("...[Identity]... [Task]... summarize the ticket"))

    assert mode.kind is ModeKind.ASSISTANT
    assert mode.operation is None


def test_operation_priority_order_breaks_ties() -> None:
    assert detect_operation("Please rephrase and summarize this") is Operation.SUMMARIZE
    assert detect_operation("rephrase, then shorten it") is Operation.SHORTEN
    assert detect_operation("Make it FRIENDLY or formal") is Operation.MAKE_FRIENDLY
    assert detect_operation("expand and simplify") is Operation.EXPAND


def test_operation_keywords_are_case_insensitive() -> None:
    mode = classify(_messages("SUMMARIZE the conversation"))

    assert mode.kind is ModeKind.OPERATION
    assert mode.operation is Operation.SUMMARIZE
    assert mode.label == "operation:summarize"


def test_reply_and_label_keywords() -> None:
    assert detect_operation("Suggest a reply to the customer") is Operation.REPLY_SUGGESTION
    assert detect_operation("reply_suggestion") is Operation.REPLY_SUGGESTION
    assert detect_operation("Pick a label for this conversation") is Operation.LABEL_SUGGESTION
    assert detect_operation("hello there") is None


def test_structured_system_content_is_flattened() -> None:
    content = [
        {"type": "text", "text": "[Identity] Captain"},
        {"type": "text", "text": "[Task] help"},
    ]

    assert classify(_messages(content)).kind is ModeKind.ASSISTANT
    assert classify(_messages({"content": [{"text": "shorten this"}]})).operation is Operation.SHORTEN


def test_flatten_content_shapes() -> None:
    assert flatten_content("plain") == "plain"
    assert flatten_content(["a", {"text": "b"}, {"content": "c"}, {"image": "x"}]) == "a b c"
    assert flatten_content({"text": "t"}) == "t"
    assert flatten_content({"foo": 1}) == '{"foo": 1}'
    assert flatten_content([{"image_url": "u"}]) == '[{"image_url": "u"}]'
    assert flatten_content(None) == ""
