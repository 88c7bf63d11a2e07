"""Data models used throughout prosescope."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from prosescope.errors import MarkupError

# ---------------------------------------------------------------------------
# Formats
# ---------------------------------------------------------------------------

# File extension -> normalized format identifier.
FORMATS: dict[str, str] = {
    ".md": ".md",
    ".mdown": ".md",
    ".markdown": ".md",
    ".markdn": ".md",
    ".mkd": ".md",
    ".rst": ".rst",
    ".rest": ".rst",
    ".adoc": ".adoc",
    ".asciidoc": ".adoc",
    ".asc": ".adoc",
    ".html": ".html",
    ".htm": ".html",
    ".shtml": ".html",
    ".xhtml": ".html",
    ".xml": ".xml",
    ".dita": ".dita",
}


def normalize_format(ext: str) -> str | None:
    """Return the format identifier for *ext* (``".markdown"`` -> ``".md"``)."""
    return FORMATS.get(ext.lower())


def scope_label(base: str, fmt: str) -> str:
    """Suffix a scope *base* with a format identifier: ``link`` + ``.md``."""
    return base + fmt


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

_CONTROL_RE = re.compile(r"^prosescope\s+([\w.-]+)\s*=\s*(YES|NO)$")


@dataclass
class Document:
    """One input file, linted once and then discarded."""

    path: str
    content: str
    format: str = ""
    summary: list[str] = field(default_factory=list)
    comments: dict[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.format:
            suffix = Path(self.path).suffix
            self.format = normalize_format(suffix) or suffix.lower()

    @classmethod
    def from_path(cls, path: str | Path) -> Document:
        p = Path(path)
        return cls(path=str(p), content=p.read_text(encoding="utf-8", errors="replace"))

    @property
    def line_count(self) -> int:
        return self.content.count("\n") + 1

    @property
    def summary_text(self) -> str:
        return "".join(self.summary)

    def add_summary(self, text: str) -> None:
        """Append block-level prose to the document summary."""
        self.summary.append(text + " ")

    def update_comments(self, comment: str) -> None:
        """Record an in-document control comment.

        ``prosescope off`` / ``prosescope on`` toggle linting as a whole;
        ``prosescope Style.Rule = NO`` disables a single check.
        """
        comment = comment.strip()
        if comment == "prosescope off":
            self.comments["off"] = True
        elif comment == "prosescope on":
            self.comments["off"] = False
        else:
            m = _CONTROL_RE.match(comment)
            if m:
                self.comments[m.group(1)] = m.group(2) == "NO"


# ---------------------------------------------------------------------------
# Block
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Block:
    """A classified fragment of text handed to the rule engine."""

    context: str
    text: str
    raw: str
    scope: str

    @classmethod
    def create(cls, context: str, text: str, raw: str, scope: str) -> Block:
        """Build a block; an empty *context* falls back to the text itself."""
        return cls(context=context or text, text=text, raw=raw, scope=scope)


@dataclass(frozen=True)
class Submission:
    """One call made into the rule engine."""

    block: Block
    prose: bool = False
    line_offset: int = 0
    column_offset: int = 0


# ---------------------------------------------------------------------------
# Lint result (per document)
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Outcome of linting one document: matches, or a document-scoped failure."""

    path: str
    format: str
    matches: list[Any] = field(default_factory=list)
    error: MarkupError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
