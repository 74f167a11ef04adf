from __future__ import annotations

import dataclasses
import re

INLINE = "$"
BLOCK = "$$"


@dataclasses.dataclass(frozen=True)
class DelimiterRewrite:
    legacy: str
    canonical: str


# Block spellings must be rewritten before inline ones.
DELIMITER_SPEC: tuple[DelimiterRewrite, ...] = (
    DelimiterRewrite(legacy="\\[", canonical=BLOCK),
    DelimiterRewrite(legacy="\\]", canonical=BLOCK),
    DelimiterRewrite(legacy="\\(", canonical=INLINE),
    DelimiterRewrite(legacy="\\)", canonical=INLINE),
)

_DOLLAR_RUN_RE = re.compile(r"[\\$]+")


def _collapse_escaped_dollars(match: re.Match[str]) -> str:
    run = match.group(0)
    if run.count("$") < 2 or "\\$" not in run:
        return run
    # Keep only the backslashes trailing the last dollar.
    last = run.rfind("$")
    return "$" * run.count("$", 0, last + 1) + run[last + 1 :]


def normalize(text: str) -> str:
    """Rewrite legacy math delimiters into canonical ``$``/``$$`` markers."""
    if not text:
        return text
    s = text
    for rewrite in DELIMITER_SPEC:
        s = s.replace(rewrite.legacy, rewrite.canonical)
    return _DOLLAR_RUN_RE.sub(_collapse_escaped_dollars, s)
