"""Linter: run documents through conversion and classification into a rule engine.

The rule engine itself is pluggable: anything with ``lint_text`` and
``lint_prose`` works.  :class:`BlockCollector` is a ready-made engine
that just records what it receives.
"""

from __future__ import annotations

import shutil
from typing import Any, Iterable, Protocol, runtime_checkable

from prosescope.config import LintConfig, MarkupTables
from prosescope.errors import MarkupError
from prosescope.logging import get_logger
from prosescope.markup.converters import ConverterRegistry, Lookup, convert
from prosescope.markup.walker import walk_markup
from prosescope.models import Block, Document, LintResult, Submission

log = get_logger("linter")


@runtime_checkable
class RuleEngine(Protocol):
    """Checks classified text against style rules."""

    def lint_text(
        self,
        document: Document,
        block: Block,
        line_offset: int,
        column_offset: int,
    ) -> Any:
        """Check a scoped block; return matches (an iterable) or None."""
        ...

    def lint_prose(
        self,
        document: Document,
        context: str,
        text: str,
        raw: str,
        line_offset: int,
        column_offset: int,
    ) -> Any:
        """Check an unscoped run of prose; return matches (an iterable) or None."""
        ...


class BlockCollector:
    """A rule engine that records every submission and reports it back as a match."""

    def __init__(self) -> None:
        self.submissions: list[Submission] = []

    def lint_text(self, document, block, line_offset, column_offset):
        submission = Submission(block, False, line_offset, column_offset)
        self.submissions.append(submission)
        return [submission]

    def lint_prose(self, document, context, text, raw, line_offset, column_offset):
        block = Block.create(context, text, raw, "")
        submission = Submission(block, True, line_offset, column_offset)
        self.submissions.append(submission)
        return [submission]

    @property
    def blocks(self) -> list[Block]:
        return [s.block for s in self.submissions]

    def scoped(self, scope: str) -> list[Block]:
        """Blocks submitted under exactly *scope*."""
        return [s.block for s in self.submissions if not s.prose and s.block.scope == scope]

    @property
    def prose(self) -> list[Block]:
        return [s.block for s in self.submissions if s.prose]

    def clear(self) -> None:
        self.submissions.clear()


class Linter:
    """Converts, classifies and dispatches documents, one at a time.

    Lookup tables and converters are built once here and shared read-only
    by every document this linter processes.
    """

    def __init__(
        self,
        engine: RuleEngine,
        config: LintConfig | None = None,
        registry: ConverterRegistry | None = None,
        lookup: Lookup = shutil.which,
    ) -> None:
        self.engine = engine
        self.config = config or LintConfig()
        self.tables = MarkupTables.from_config(self.config)
        self.registry = registry or ConverterRegistry.default(self.config, lookup)

    def lint(self, document: Document, offset: int = 0) -> list[Any]:
        """Lint *document*, raising :class:`MarkupError` on failure.

        Conversion finishes before the first engine call, so a failed
        conversion never leaves partial results behind.
        """
        converted = convert(document, self.registry, self.config)
        lines = document.line_count + offset
        matches: list[Any] = []
        for submission in walk_markup(document, converted.markup, converted.context, self.tables):
            matches.extend(self._dispatch(document, submission, lines))
        return matches

    def _dispatch(self, document: Document, submission: Submission, lines: int) -> list[Any]:
        block = submission.block
        if submission.prose:
            found = self.engine.lint_prose(document, block.context, block.text, block.raw, lines, 0)
        else:
            found = self.engine.lint_text(document, block, lines, 0)
        return list(found or [])

    def lint_document(self, document: Document) -> LintResult:
        """Lint *document*; markup failures are returned, not raised."""
        result = LintResult(path=document.path, format=document.format)
        try:
            result.matches = self.lint(document)
        except MarkupError as exc:
            log.warning("%s", exc)
            result.error = exc
        return result

    def lint_documents(self, documents: Iterable[Document]) -> list[LintResult]:
        """Lint each document independently; one failure never stops the rest."""
        return [self.lint_document(doc) for doc in documents]
