from __future__ import annotations

import json
import time
from collections.abc import Iterator
from typing import Any
from uuid import uuid4

SERIALIZATION_ERROR_MESSAGE = "Erro ao serializar resposta."


def new_completion_id() -> str:
    return f"chatcmpl-{uuid4().hex}"


def safe_json(content: Any) -> str:
    try:
        return json.dumps(content, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        return json.dumps(
            {"reasoning": "", "response": SERIALIZATION_ERROR_MESSAGE, "error": str(exc)},
            ensure_ascii=False,
        )


class EnvelopeBuilder:
    """Wraps a result into an OpenAI ``chat.completion`` object.

    ``deliver_objects`` selects the content contract for structured results:
    ``False`` JSON-encodes them into ``message.content``, ``True`` hands them
    over verbatim.
    """

    def __init__(self, deliver_objects: bool = False) -> None:
        self.deliver_objects = deliver_objects

    def render_content(self, content: Any, structured: bool = False) -> str | dict[str, Any]:
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if structured and self.deliver_objects and isinstance(content, dict):
            # Re-decoding proves the object is JSON-safe before it goes out.
            return json.loads(safe_json(content))
        return safe_json(content)

    def build(self, content: Any, model: str, structured: bool = False) -> dict[str, Any]:
        return {
            "id": new_completion_id(),
            "object": "chat.completion",
            "created": int(time.time()),
            "model": model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": self.render_content(content, structured)},
                    "finish_reason": "stop",
                }
            ],
            "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        }

    def stream_chunks(self, envelope: dict[str, Any]) -> Iterator[str]:
        """Server-sent event lines replaying a built envelope as one delta."""
        message = envelope["choices"][0]["message"]
        base = {
            "id": envelope["id"],
            "object": "chat.completion.chunk",
            "created": envelope["created"],
            "model": envelope["model"],
        }
        first = {
            **base,
            "choices": [{"index": 0, "delta": {"role": "assistant", "content": message["content"]}, "finish_reason": None}],
        }
        last = {**base, "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]}
        yield f"data: {safe_json(first)}\n\n"
        yield f"data: {safe_json(last)}\n\n"
        yield "data: [DONE]\n\n"


def build_envelope(content: Any, model: str, deliver_objects: bool = False) -> dict[str, Any]:
    return EnvelopeBuilder(deliver_objects=deliver_objects).build(content, model, structured=True)
