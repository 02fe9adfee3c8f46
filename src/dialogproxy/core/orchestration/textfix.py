"""Light pt-BR text fix-ups applied to prompts and backend replies."""

from __future__ import annotations

import re

_PROMPT_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bvc\b", re.IGNORECASE), "você"),
    (re.compile(r"\bvcê\b", re.IGNORECASE), "você"),
    (re.compile(r"\bqnd\b", re.IGNORECASE), "quando"),
    (re.compile(r"\bpq\b", re.IGNORECASE), "porque"),
    (re.compile(r"\btd\b", re.IGNORECASE), "tudo"),
    (re.compile(r"\bmsm\b", re.IGNORECASE), "mesmo"),
    (re.compile(r"\bnao\b", re.IGNORECASE), "não"),
    (re.compile(r"\bobg\b", re.IGNORECASE), "obrigado"),
    (re.compile(r"\bbrigad[oa]\b", re.IGNORECASE), "obrigado"),
)

_RESPONSE_TYPOS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bcekin\b", re.IGNORECASE), "check-in"),
    (re.compile(r"\bchekin\b", re.IGNORECASE), "check-in"),
    (re.compile(r"\bdezembo\b", re.IGNORECASE), "dezembro"),
)

_HORIZONTAL_SPACE_RE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE_RE = re.compile(r" *\n *")
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_ANY_SPACE_RE = re.compile(r"\s{2,}")
_REPEATED_PERIODS_RE = re.compile(r"\.{2,}")

TRUNCATION_MARKER = "\n\n... [truncated]"


def correct_prompt_text(text: str) -> str:
    """Expand common chat shorthand in user input."""
    if not text:
        return text
    out = text
    for pattern, replacement in _PROMPT_RULES:
        out = pattern.sub(replacement, out)
    return _ANY_SPACE_RE.sub(" ", out).strip()


def fix_response_text(text: str) -> str:
    """Normalize backend reply text. Idempotent: fix(fix(x)) == fix(x)."""
    if not text:
        return ""
    out = _HORIZONTAL_SPACE_RE.sub(" ", text)
    out = _SPACE_AROUND_NEWLINE_RE.sub("\n", out)
    out = _BLANK_LINES_RE.sub("\n\n", out)
    out = _REPEATED_PERIODS_RE.sub(".", out)
    for pattern, replacement in _RESPONSE_TYPOS:
        out = pattern.sub(replacement, out)
    return out.strip()


def truncate_text(text: str, max_len: int) -> str:
    if not text or len(text) <= max_len:
        return text
    return text[: max(0, max_len - 100)] + TRUNCATION_MARKER
