"""Context tracking: anchor converted text back to the original source.

Converters emit no source maps, so positions are recovered by string
matching: each fragment of converted text is located in the original
source and the located span is *consumed* so later searches skip it.
Consumed spans are kept as a sorted set of ``[start, end)`` intervals over
the untouched source; :meth:`ContextString.render` materializes the
source with consumed characters replaced by ``@`` (newlines are kept),
which preserves every offset into the original document.
"""

from __future__ import annotations

import bisect
import re
from typing import Iterable

PLACEHOLDER = "@"

_NOT_NEWLINE = re.compile(r"[^\n]")


def redact(text: str, char: str) -> str:
    """Replace every character of *text* except newlines with *char*."""
    return _NOT_NEWLINE.sub(char, text)


class ContextString:
    """The document source plus the spans already matched against it."""

    __slots__ = ("source", "_starts", "_ends", "_rendered")

    def __init__(self, source: str) -> None:
        self.source = source
        self._starts: list[int] = []
        self._ends: list[int] = []
        self._rendered: str | None = source

    def __len__(self) -> int:
        return len(self.source)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"ContextString(len={len(self.source)}, consumed={len(self._starts)})"

    @property
    def consumed(self) -> list[tuple[int, int]]:
        return list(zip(self._starts, self._ends))

    def copy(self) -> ContextString:
        clone = ContextString(self.source)
        clone._starts = list(self._starts)
        clone._ends = list(self._ends)
        clone._rendered = self._rendered
        return clone

    # ---- searching ----

    def _last_overlap_end(self, start: int, end: int) -> int | None:
        """End of the right-most consumed span overlapping ``[start, end)``."""
        # Spans never overlap each other, so ends are sorted like starts.
        hi = bisect.bisect_left(self._starts, end)
        lo = bisect.bisect_right(self._ends, start)
        if lo < hi:
            return self._ends[hi - 1]
        return None

    def find(self, sub: str, start: int = 0) -> int:
        """Index of the first occurrence of *sub* not touching a consumed span."""
        if not sub:
            return -1
        pos = start
        while True:
            idx = self.source.find(sub, pos)
            if idx < 0:
                return -1
            blocked = self._last_overlap_end(idx, idx + len(sub))
            if blocked is None:
                return idx
            # Every occurrence starting before ``blocked`` overlaps the same span.
            pos = blocked

    # ---- consuming ----

    def consume(self, start: int, end: int) -> None:
        if end <= start:
            return
        if self._last_overlap_end(start, end) is not None:
            raise ValueError(f"span [{start}, {end}) is already consumed")
        i = bisect.bisect_left(self._starts, start)
        self._starts.insert(i, start)
        self._ends.insert(i, end)
        self._rendered = None

    def substitute(self, sub: str) -> bool:
        """Consume the first unconsumed occurrence of *sub*; report success."""
        idx = self.find(sub)
        if idx < 0:
            return False
        self.consume(idx, idx + len(sub))
        return True

    def consume_text(self, fragment: str) -> ContextString:
        """Consume *fragment* line by line, falling back to single words.

        Whole lines are preferred because they anchor multi-word text
        precisely; converters reflow whitespace, so when a line no longer
        occurs verbatim each of its words is consumed on its own.
        """
        for line in fragment.split("\n"):
            if not line:
                continue
            if not self.substitute(line):
                for word in line.split():
                    self.substitute(word)
        return self

    def render(self) -> str:
        """The source with every consumed character replaced by ``@``."""
        if self._rendered is None:
            parts: list[str] = []
            pos = 0
            for s, e in zip(self._starts, self._ends):
                parts.append(self.source[pos:s])
                parts.append(redact(self.source[s:e], PLACEHOLDER))
                pos = e
            parts.append(self.source[pos:])
            self._rendered = "".join(parts)
        return self._rendered


def advance(context: ContextString, fragments: Iterable[str]) -> ContextString:
    """Return a copy of *context* with each of *fragments* consumed in order."""
    clone = context.copy()
    for fragment in fragments:
        clone.consume_text(fragment)
    return clone
