"""Decode model output into validated domain objects.

Two-stage pipeline: ``strict_parse``; on failure ``repair_escape_sequences``
and ``strict_parse`` exactly once more. Schema problems are terminal and never
trigger the repair pass.
"""
from __future__ import annotations

import json
import logging
import re
import typing as t

from .config import Settings, get_settings
from .models import JsonDict, SchemaError, SolutionDocument

logger = logging.getLogger(__name__)

_T = t.TypeVar("_T")

JSON_ESCAPES = frozenset('"\\/bfnrtu')

# JSON escapes that, followed by a letter, are really LaTeX control words
# (\frac, \beta, \binom, \forall). \n, \r and \t are ambiguous and kept.
_LATEX_SHADOWED_ESCAPES = frozenset("bf")

# A backspace or form feed right before a letter is a swallowed \beta or \frac.
_SHADOWED_LATEX_RE = re.compile("[\b\f][A-Za-z]")

_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")
_OPEN_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\r?\n?")
_CLOSE_FENCE_RE = re.compile(r"\r?\n?```\s*$")


class DecodeError(Exception):
    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text

    def __str__(self) -> str:
        return self.message


def strip_code_fences(text: str) -> str:
    s = text.strip()
    if not s.startswith("```"):
        return s
    s = _OPEN_FENCE_RE.sub("", s, count=1)
    s = _CLOSE_FENCE_RE.sub("", s, count=1)
    return s.strip()


def _has_suspicious_chars(obj: t.Any) -> bool:
    if isinstance(obj, str):
        return _SHADOWED_LATEX_RE.search(obj) is not None
    if isinstance(obj, list):
        return any(_has_suspicious_chars(x) for x in obj)
    if isinstance(obj, dict):
        return any(_has_suspicious_chars(k) or _has_suspicious_chars(v) for k, v in obj.items())
    return False


def strict_parse(text: str) -> t.Any:
    """``json.loads`` that also rejects LaTeX swallowed by ``\\b``/``\\f`` escapes.

    Raw newlines and tabs inside strings are accepted.

    Raises ``json.JSONDecodeError``.
    """
    value = json.loads(text, strict=False)
    if _has_suspicious_chars(value):
        raise json.JSONDecodeError("control character from under-escaped LaTeX", text, 0)
    return value


def repair_escape_sequences(text: str) -> str:
    """Double every backslash that does not start a valid JSON escape."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        nxt = text[i + 1] if i + 1 < n else ""
        after = text[i + 2] if i + 2 < n else ""
        if nxt in _LATEX_SHADOWED_ESCAPES and after.isascii() and after.isalpha():
            out.append("\\\\")
            i += 1
            continue
        if nxt == "u" and not _HEX4_RE.match(text, i + 2):
            # \underline, \upsilon
            out.append("\\\\")
            i += 1
            continue
        if nxt and nxt in JSON_ESCAPES:
            # Keep the pair together so "\\" is never split.
            out.append(ch)
            out.append(nxt)
            i += 2
            continue
        out.append("\\\\")
        i += 1
    return "".join(out)


def _excerpt(raw: str) -> str:
    try:
        limit = get_settings().error_excerpt_chars
    except RuntimeError:
        limit = Settings().error_excerpt_chars
    return raw if len(raw) <= limit else raw[:limit] + "..."


def parse_model_json(raw: str) -> t.Any:
    cleaned = strip_code_fences(raw)
    try:
        return strict_parse(cleaned)
    except json.JSONDecodeError as first_error:
        logger.warning("Model JSON did not parse (%s); retrying with escaped backslashes", first_error)
    repaired = repair_escape_sequences(cleaned)
    try:
        return strict_parse(repaired)
    except json.JSONDecodeError as e:
        logger.error("Model JSON still invalid after repair: %s", _excerpt(raw))
        raise DecodeError("The AI response was not valid JSON. Please try again.", raw) from e


def decode_json(raw: str, factory: t.Callable[[JsonDict], _T]) -> _T:
    if not isinstance(raw, str) or not raw.strip():
        raise DecodeError("The AI response was empty. Please try again.", raw if isinstance(raw, str) else "")
    data = parse_model_json(raw)
    try:
        return factory(data)
    except SchemaError as e:
        logger.error("Model JSON failed schema validation at %s: %s", e.path, e.problem)
        raise DecodeError(f"The AI response was incomplete ({e}). Please try again.", raw) from e


def decode(raw: str) -> SolutionDocument:
    return decode_json(raw, SolutionDocument.from_dict)


def decode_string_list(raw: str) -> list[str]:
    def factory(data: t.Any) -> list[str]:
        if not isinstance(data, list):
            raise SchemaError("<root>", f"expected array, got {type(data).__name__}")
        for i, item in enumerate(data):
            if not isinstance(item, str):
                raise SchemaError(f"[{i}]", f"expected string, got {type(item).__name__}")
        return list(data)

    return decode_json(raw, factory)
