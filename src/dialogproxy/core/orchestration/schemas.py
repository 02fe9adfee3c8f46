from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Literal["system", "user", "assistant"]
    content: Union[str, dict[str, Any], list[Any]]


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    model: str = Field(min_length=1)
    messages: list[ChatMessage] = Field(min_length=1)
    conversation_id: str | None = None
    metadata: dict[str, Any] | None = None
    stream: bool = False

    @field_validator("model")
    @classmethod
    def _strip_model(cls, value: str) -> str:
        # Blank names fall back to the configured default model.
        return value.strip()


class Operation(str, Enum):
    SUMMARIZE = "summarize"
    SHORTEN = "shorten"
    REPHRASE = "rephrase"
    MAKE_FRIENDLY = "make_friendly"
    MAKE_FORMAL = "make_formal"
    EXPAND = "expand"
    SIMPLIFY = "simplify"
    REPLY_SUGGESTION = "reply_suggestion"
    LABEL_SUGGESTION = "label_suggestion"


class ModeKind(str, Enum):
    ASSISTANT = "assistant"
    OPERATION = "operation"
    DEFAULT = "default"


@dataclass(frozen=True)
class Mode:
    kind: ModeKind
    operation: Operation | None = None

    @property
    def label(self) -> str:
        if self.operation is not None:
            return f"{self.kind.value}:{self.operation.value}"
        return self.kind.value


class PayloadKind(str, Enum):
    ABSENT = "absent"
    TEXT_ARRAY = "text_array"
    TEXT_ENCODED = "text_encoded"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class DispatchHints:
    sender: str = "proxy-user"
    conversation_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    parse_only: bool = False


@dataclass
class DispatchAttempt:
    transport: str
    ok: bool
    payload: Any = None
    error: str | None = None


@dataclass
class DispatchOutcome:
    ok: bool
    payload: Any = None
    source: str | None = None
    attempts: list[DispatchAttempt] = field(default_factory=list)


@dataclass
class CanonicalResult:
    reasoning: str
    response: str
    stop: bool = False
    reply_suggestions: list[str] = field(default_factory=list)
    label: str | None = None
    sources: list[Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: Any = None

    def as_assistant_payload(self) -> dict[str, Any]:
        return {
            "reasoning": self.reasoning,
            "response": self.response,
            "stop": self.stop,
            "label": self.label or "",
            "reply_suggestions": list(self.reply_suggestions),
            "sources": list(self.sources or []),
            "metadata": dict(self.metadata),
        }

    def as_text_payload(self) -> dict[str, Any]:
        return {"reasoning": self.reasoning, "response": self.response, "stop": self.stop}


@dataclass
class RequestResult:
    mode: Mode
    model: str
    content: str | dict[str, Any]
    canonical: CanonicalResult
    dispatch: DispatchOutcome
    envelope: dict[str, Any] = field(default_factory=dict)
