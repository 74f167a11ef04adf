"""Rendering side of the segment contract.

The core only guarantees segment correctness. Turning a segment into output is
delegated to two injected engines: a ``ProseEngine`` for markdown prose and a
``FormulaEngine`` for math. A formula engine failure never aborts the
surrounding render; the formula source is shown verbatim instead.
"""
from __future__ import annotations

import html
import logging
import re
import typing as t

import mistune
from latex2mathml.converter import convert as latex_to_mathml

from .delimiters import normalize
from .segmenter import BlockMath, Prose, Segment, segment

logger = logging.getLogger(__name__)


class FormulaEngine(t.Protocol):
    def render(self, formula: str, *, display: bool) -> str: ...


class ProseEngine(t.Protocol):
    def render(self, text: str) -> str: ...


class MathMLFormulaEngine:
    def render(self, formula: str, *, display: bool) -> str:
        return latex_to_mathml(formula, display="block" if display else "inline")


class MarkdownProseEngine:
    """GitHub-flavoured markdown, unwrapped so it can sit inline next to math."""

    def __init__(self, plugins: t.Sequence[str] = ("strikethrough", "table", "url")) -> None:
        self._markdown = mistune.create_markdown(escape=True, plugins=list(plugins))

    def render(self, text: str) -> str:
        body = text.strip()
        if not body:
            return text
        # mistune trims the paragraph; the edges border formulas and must survive.
        lead = text[: len(text) - len(text.lstrip())]
        trail = text[len(text.rstrip()) :]
        out = t.cast(str, self._markdown(body))
        out = out.replace("<p>", "<span>").replace("</p>", "</span>")
        return lead + out.strip() + trail


class PlainTextFormulaEngine:
    """Flatten LaTeX to readable plain text (narration, text-to-speech)."""

    def render(self, formula: str, *, display: bool = False) -> str:
        s = formula
        s = s.replace("\\cdot", "*")
        s = s.replace("\\times", "*")
        s = s.replace("\\frac", "frac")
        s = re.sub(r"\\[a-zA-Z]+", "", s)
        s = s.replace("{", "").replace("}", "")
        s = re.sub(r"\s+", " ", s).strip()
        return s


class PlainProseEngine:
    def render(self, text: str) -> str:
        return text.replace("\\$", "$")


def html_formula_fallback(formula: str, display: bool) -> str:
    tag = "code" if display else "span"
    return f'<{tag} class="math-fallback">{html.escape(formula)}</{tag}>'


def verbatim_formula_fallback(formula: str, display: bool) -> str:
    return formula


class SegmentRenderer:
    def __init__(
        self,
        *,
        prose_engine: ProseEngine,
        formula_engine: FormulaEngine,
        formula_fallback: t.Callable[[str, bool], str] = verbatim_formula_fallback,
        joiner: str = "",
    ) -> None:
        self.prose_engine = prose_engine
        self.formula_engine = formula_engine
        self.formula_fallback = formula_fallback
        self.joiner = joiner

    def render_segment(self, seg: Segment) -> str:
        if isinstance(seg, Prose):
            return self.prose_engine.render(seg.text)
        display = isinstance(seg, BlockMath)
        try:
            out = self.formula_engine.render(seg.formula, display=display)
        except Exception as e:
            logger.warning("Formula render failed for %r: %s", seg.formula, e)
            return self.formula_fallback(seg.formula, display)
        return out if out else self.formula_fallback(seg.formula, display)

    def render_segments(self, segments: t.Iterable[Segment]) -> str:
        return self.joiner.join(self.render_segment(s) for s in segments)

    def render_text(self, text: str) -> str:
        if not text:
            return ""
        return self.render_segments(segment(normalize(text)))


def html_renderer() -> SegmentRenderer:
    return SegmentRenderer(
        prose_engine=MarkdownProseEngine(),
        formula_engine=MathMLFormulaEngine(),
        formula_fallback=html_formula_fallback,
    )


def plain_text_renderer() -> SegmentRenderer:
    return SegmentRenderer(prose_engine=PlainProseEngine(), formula_engine=PlainTextFormulaEngine())


def to_plain_text(text: str) -> str:
    """Drop math delimiters and LaTeX commands, keeping readable text."""
    return re.sub(r"[ \t]+", " ", plain_text_renderer().render_text(text)).strip()
