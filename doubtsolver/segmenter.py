"""Split mixed prose/LaTeX text into typed segments.

The scanner walks the text once, left to right, in one of three states:

- ``PROSE``: copying characters until an unescaped ``$``.
- ``SEEK_BLOCK_CLOSE``: inside ``$$ ... $$``, looking for the next ``$$``.
- ``SEEK_INLINE_CLOSE``: inside ``$ ... $``, looking for the next unescaped
  ``$`` on the same line.

Nothing here raises on malformed input: an opener that cannot be closed
degrades to prose. Each segment keeps the exact substring it was cut from in
``source``, so ``"".join(s.source for s in segment(text)) == text``. Equality
ignores ``source``: segments compare by what they show.
"""
from __future__ import annotations

import dataclasses
import enum
import typing as t

from .delimiters import BLOCK, INLINE


@dataclasses.dataclass(frozen=True)
class Prose:
    text: str
    source: str | None = dataclasses.field(default=None, compare=False)

    kind: t.ClassVar[str] = "prose"

    def __post_init__(self) -> None:
        if self.source is None:
            object.__setattr__(self, "source", self.text)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "text": self.text}


@dataclasses.dataclass(frozen=True)
class InlineMath:
    formula: str
    source: str | None = dataclasses.field(default=None, compare=False)

    kind: t.ClassVar[str] = "inline_math"

    def __post_init__(self) -> None:
        if self.source is None:
            object.__setattr__(self, "source", f"{INLINE}{self.formula}{INLINE}")

    @property
    def text(self) -> str:
        return self.formula

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "formula": self.formula}


@dataclasses.dataclass(frozen=True)
class BlockMath:
    formula: str
    source: str | None = dataclasses.field(default=None, compare=False)

    kind: t.ClassVar[str] = "block_math"

    def __post_init__(self) -> None:
        if self.source is None:
            object.__setattr__(self, "source", f"{BLOCK}{self.formula}{BLOCK}")

    @property
    def text(self) -> str:
        return self.formula

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "formula": self.formula}


Segment = t.Union[Prose, InlineMath, BlockMath]


class ScanState(enum.Enum):
    PROSE = "prose"
    SEEK_INLINE_CLOSE = "seek_inline_close"
    SEEK_BLOCK_CLOSE = "seek_block_close"


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self._prose: list[str] = []
        self._prose_source: list[str] = []

    def _add_prose(self, shown: str, source: str | None = None) -> None:
        self._prose.append(shown)
        self._prose_source.append(shown if source is None else source)

    def _take_prose(self) -> Prose | None:
        if not self._prose_source:
            return None
        seg = Prose("".join(self._prose), source="".join(self._prose_source))
        self._prose.clear()
        self._prose_source.clear()
        return seg

    def run(self) -> t.Iterator[Segment]:
        text = self.text
        n = len(text)
        state = ScanState.PROSE
        start = 0  # first character not yet assigned to a segment
        opener = 0
        no_block_close = False
        i = 0

        while True:
            if i >= n:
                if state is ScanState.SEEK_BLOCK_CLOSE:
                    # No "$$" closes anything from here on: the opener is an
                    # empty inline formula.
                    no_block_close = True
                    self._add_prose(INLINE, text[opener : opener + 2])
                    i = start = opener + 2
                    state = ScanState.PROSE
                    continue
                # Unclosed inline openers and trailing prose are literal text.
                if start < n:
                    self._add_prose(text[start:])
                break

            ch = text[i]

            if state is ScanState.PROSE:
                if ch != "$" or (i > 0 and text[i - 1] == "\\"):
                    i += 1
                    continue
                if i > start:
                    self._add_prose(text[start:i])
                start = opener = i
                if i + 1 < n and text[i + 1] == "$":
                    if no_block_close:
                        self._add_prose(INLINE, text[i : i + 2])
                        i = start = i + 2
                        continue
                    state = ScanState.SEEK_BLOCK_CLOSE
                    i += 2
                else:
                    state = ScanState.SEEK_INLINE_CLOSE
                    i += 1
                continue

            if state is ScanState.SEEK_BLOCK_CLOSE:
                if ch == "$" and i + 1 < n and text[i + 1] == "$":
                    formula = text[opener + 2 : i].strip()
                    source = text[opener : i + 2]
                    i = start = i + 2
                    state = ScanState.PROSE
                    if not formula:
                        self._add_prose(INLINE, source)
                        continue
                    prose = self._take_prose()
                    if prose is not None:
                        yield prose
                    yield BlockMath(formula, source=source)
                    continue
                i += 1
                continue

            # SEEK_INLINE_CLOSE
            if ch == "\n":
                # No unescaped "$" lies between the opener and here, so the
                # whole run is prose.
                state = ScanState.PROSE
                continue
            if ch == "$" and text[i - 1] != "\\":
                formula = text[opener + 1 : i].strip()
                source = text[opener : i + 1]
                i = start = i + 1
                state = ScanState.PROSE
                if not formula:
                    self._add_prose(INLINE, source)
                    continue
                prose = self._take_prose()
                if prose is not None:
                    yield prose
                yield InlineMath(formula, source=source)
                continue
            i += 1

        prose = self._take_prose()
        if prose is not None:
            yield prose


def iter_segments(text: str) -> t.Iterator[Segment]:
    if not text:
        return iter(())
    return _Scanner(text).run()


def segment(text: str) -> list[Segment]:
    return list(iter_segments(text))


def source_of(segments: t.Iterable[Segment]) -> str:
    return "".join(t.cast(str, s.source) for s in segments)
