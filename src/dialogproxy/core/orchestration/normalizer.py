from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .schemas import CanonicalResult, PayloadKind
from .textfix import fix_response_text

ABSENT_PAYLOAD_MESSAGE = "Não consegui processar agora."
EMPTY_RESPONSE_MESSAGE = "Desculpe, não tenho uma resposta agora."

_TEXT_FIELDS = ("response", "output", "content", "text", "generated_text")
_SUGGESTION_FIELDS = ("reply_suggestions", "replySuggestions", "reply_suggestion", "replySuggestion")
_LABEL_FIELDS = ("label_suggestion", "label")
_RICH_FIELDS = ("buttons", "image", "attachment", "payload")

logger = logging.getLogger("dialogproxy.normalizer")


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return _to_json(value)
    return str(value)


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


def _nested(raw: Mapping[str, Any], key: str) -> Any:
    metadata = raw.get("metadata")
    if isinstance(metadata, Mapping):
        return metadata.get(key)
    return None


def classify_payload(raw: Any) -> PayloadKind:
    if isinstance(raw, list):
        return PayloadKind.TEXT_ARRAY
    if isinstance(raw, Mapping):
        return PayloadKind.STRUCTURED
    if not raw:
        return PayloadKind.ABSENT
    return PayloadKind.TEXT_ENCODED


def extract_fragment_text(fragment: Any) -> str | None:
    if not fragment:
        return None
    if isinstance(fragment, str):
        return fragment
    if not isinstance(fragment, Mapping):
        return _as_text(fragment)
    for key in ("text", "message"):
        if isinstance(fragment.get(key), str):
            return fragment[key]

    custom = fragment.get("custom")
    if custom:
        if isinstance(custom, Mapping):
            for key in ("text", "message"):
                if isinstance(custom.get(key), str):
                    return custom[key]
        return _to_json(custom)

    rich = {key: fragment[key] for key in _RICH_FIELDS if fragment.get(key) is not None}
    if rich:
        return _to_json(rich)
    return None


def _intent_name(intent: Any) -> str | None:
    if isinstance(intent, Mapping):
        name = intent.get("name")
        return name if isinstance(name, str) and name else None
    if isinstance(intent, str) and intent:
        return intent
    return None


def _as_list(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def collect_reply_suggestions(raw: Mapping[str, Any]) -> list[str]:
    collected: list[str] = []
    for key in _SUGGESTION_FIELDS:
        for item in _as_list(raw.get(key)):
            if not item:
                continue
            text = item if isinstance(item, str) else _to_json(item)
            if text not in collected:
                collected.append(text)
    return collected


def _finish(result: CanonicalResult) -> CanonicalResult:
    result.response = fix_response_text(result.response)
    if not result.response.strip():
        result.response = EMPTY_RESPONSE_MESSAGE
    return result


def _normalize_array(raw: list[Any]) -> CanonicalResult:
    texts = [text for text in (extract_fragment_text(fragment) for fragment in raw) if text]
    first = raw[0] if raw and isinstance(raw[0], Mapping) else {}
    entities: list[Any] = []
    for fragment in raw:
        if isinstance(fragment, Mapping):
            entities.extend(entity for entity in _as_list(fragment.get("entities")) if entity)
    return CanonicalResult(
        reasoning="",
        response="\n\n".join(texts),
        stop=False,
        metadata={"intent": _intent_name(first.get("intent")), "entities": entities},
        raw=raw,
    )


def _normalize_object(raw: Mapping[str, Any]) -> CanonicalResult:
    base = _first(*(raw.get(key) for key in _TEXT_FIELDS))
    if not base and isinstance(raw.get("texts"), list):
        base = "\n\n".join(_as_text(item) for item in raw["texts"] if item)

    label = next((raw[key] for key in _LABEL_FIELDS if isinstance(raw.get(key), str) and raw[key]), None)
    sources = _first(raw.get("sources"), _nested(raw, "sources"))

    return CanonicalResult(
        reasoning=_as_text(_first(raw.get("reasoning"), raw.get("explanation"))),
        response=_as_text(base),
        stop=bool(raw.get("stop")),
        reply_suggestions=collect_reply_suggestions(raw),
        label=label,
        sources=_as_list(sources) or None,
        metadata={
            "intent": _first(_intent_name(raw.get("intent")), _intent_name(_nested(raw, "intent"))),
            "entities": _as_list(_first(raw.get("entities"), _nested(raw, "entities"))),
            "tags": _first(raw.get("tags"), raw.get("auto_tags"), _nested(raw, "tags")),
            "areas": _first(raw.get("areas"), _nested(raw, "areas")),
        },
        raw=dict(raw),
    )


def _normalize(raw: Any) -> CanonicalResult:
    kind = classify_payload(raw)
    if kind is PayloadKind.ABSENT:
        return CanonicalResult(reasoning="", response=ABSENT_PAYLOAD_MESSAGE, raw=raw)
    if kind is PayloadKind.TEXT_ARRAY:
        return _normalize_array(raw)
    if kind is PayloadKind.STRUCTURED:
        return _normalize_object(raw)

    text = raw.strip() if isinstance(raw, str) else str(raw)
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None
    if isinstance(decoded, (list, dict)) or (isinstance(decoded, str) and decoded != text):
        return _normalize(decoded)
    return CanonicalResult(reasoning="", response=text, raw=raw)


def normalize(raw: Any, hints: Mapping[str, Any] | None = None) -> CanonicalResult:
    """Convert any backend payload into a :class:`CanonicalResult`.

    ``response`` is always non-empty on return. Payloads that cannot be
    interpreted degrade to literal text or a fixed apology, never an error.
    """
    try:
        result = _normalize(raw)
    except Exception:
        logger.exception("Payload normalization failed", extra={"extra_fields": dict(hints or {})})
        result = CanonicalResult(reasoning="", response=ABSENT_PAYLOAD_MESSAGE, raw=raw)
    return _finish(result)
