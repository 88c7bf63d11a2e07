"""Block walker: classify converted HTML into scoped blocks.

The walker consumes the token stream once.  Text accumulates until a
non-inline end tag closes the block; the tags opened since the previous
block decide the block's scope label.  Alongside, every fragment of text
(and every ``href``/``id``/``src`` value) is consumed from the
:class:`~prosescope.markup.context.ContextString` so each block carries a
context in which it can be located at its original position.

States:

``SCANNING``
    Inside ordinary block content.
``IN_INLINE_SPAN``
    The most recently opened tag is inline (``em``, ``a``, ``code``...).
    Text here gets its lost leading space restored and, for scoped inline
    tags such as links, is linted once on its own.
``IN_SKIP_BLOCK``
    Inside ``pre``/``script``/... : text only advances the context.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator

from prosescope.config import HEADING_RE, MarkupTables
from prosescope.logging import get_logger
from prosescope.markup.context import ContextString, advance, redact
from prosescope.markup.tokens import Token, TokenKind, tokenize
from prosescope.models import Block, Document, Submission, scope_label

log = get_logger("walker")

PUNCTUATION = frozenset(".?!,:;")

# Tags whose URL/id attributes appear verbatim in the source.
_ANCHORED_TAGS = frozenset({"img", "a", "p", "script"})
_ANCHORED_ATTRS = frozenset({"href", "id", "src"})


class Mode(enum.Enum):
    SCANNING = "scanning"
    IN_INLINE_SPAN = "inline"
    IN_SKIP_BLOCK = "skip"


@dataclass(frozen=True)
class State:
    mode: Mode = Mode.SCANNING
    tag: str = ""  # current tag for scope lookup; the skip tag in IN_SKIP_BLOCK
    depth: int = 0  # nesting of the skip tag

    @property
    def inline(self) -> bool:
        return self.mode is Mode.IN_INLINE_SPAN


SCANNING = State()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def scope_for(tag_stack: Iterable[str], tables: MarkupTables, fmt: str) -> str | None:
    """Scope label for a block opened under *tag_stack*, or None for prose.

    The innermost structural tag with a scope wins; headings map to
    ``text.heading.<tag>``.  Inline tags never label a block.
    """
    for tag in reversed(list(tag_stack)):
        base = tables.tag_to_scope.get(tag)
        if base is not None and not tables.is_inline(tag):
            return scope_label(base, fmt)
        if HEADING_RE.match(tag):
            return scope_label(f"text.heading.{tag}", fmt)
    return None


def codify(fmt: str, text: str) -> str:
    """Wrap *text* in the dialect's inline-code delimiters."""
    if fmt in (".md", ".adoc"):
        return f"`{text}`"
    if fmt == ".rst":
        return f"``{text}``"
    return text


def clean(text: str, fmt: str, *, redacted: bool, inline: bool) -> tuple[str, str]:
    """Return the ``(rendered, raw)`` forms of one text fragment.

    Redacted text keeps its length but becomes ``*``; inline text gets
    back the leading space the converter's tag boundary swallowed.
    """
    starter = text[:1] in PUNCTUATION and not redacted
    raw = text
    if redacted:
        raw = codify(fmt, text)
        text = codify(fmt, redact(text, "*"))
    if inline and not starter:
        text = " " + text
        raw = " " + raw
    return text, raw


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------


class BlockWalker:
    """Single-use, single-pass classifier for one document."""

    def __init__(
        self,
        document: Document,
        context: ContextString,
        tables: MarkupTables | None = None,
    ) -> None:
        self.document = document
        self.context = context
        self.tables = tables or MarkupTables()
        self.state = SCANNING
        self.tag_stack: list[str] = []
        self.queue: list[str] = []
        self._text: list[str] = []
        self._raw: list[str] = []
        self._redact_next = False
        self._last_class = ""
        self._out: list[Submission] = []

    @property
    def fmt(self) -> str:
        return self.document.format

    # ---- emission ----

    def _emit(self, block: Block, prose: bool = False) -> None:
        self._out.append(Submission(block=block, prose=prose))

    def _emit_block(self, text: str, raw: str) -> None:
        ctx = self.context.render()
        label = scope_for(self.tag_stack, self.tables, self.fmt)
        if label is not None:
            self._emit(Block.create(ctx, text.lstrip(" "), raw, label))
            return
        # Scoped blocks (headings, list items, cells) stay out of the summary.
        self.document.add_summary(text)
        self._emit(Block.create(ctx, text, raw, ""), prose=True)

    def _flush(self) -> None:
        content = "".join(self._text)
        if content.strip():
            self._emit_block(content, "".join(self._raw))
        for fragment in self.queue:
            self.context.consume_text(fragment)
        self.queue.clear()
        self.tag_stack.clear()
        self._text.clear()
        self._raw.clear()

    # ---- checks ----

    def _has_skip_class(self) -> bool:
        return any(c in self.tables.skip_classes for c in self._last_class.split())

    def _in_rst_literal(self) -> bool:
        """rst2html wraps parts of a ``tt`` literal in ``span`` tags."""
        if self.fmt != ".rst":
            return False
        n = len(self.tag_stack)
        for i in range(n - 1, -1, -1):
            if self.tag_stack[i] == "span":
                continue
            return self.tag_stack[i] == "tt" and i + 1 != n
        return False

    # ---- transitions ----

    def _open(self, token: Token, skip_class: bool) -> State:
        name = token.data
        if name in self.tables.skip_tags:
            return State(Mode.IN_SKIP_BLOCK, name, 1)
        self.tag_stack.append(name)
        self._redact_next = name in self.tables.ignored_scopes
        if self.tables.is_inline(name):
            return State(Mode.IN_INLINE_SPAN, name)
        return State(Mode.SCANNING, name)

    def _void(self, token: Token, skip_class: bool) -> State:
        # ``<br />`` and ``<img />`` have no end tag and never join the stack.
        if self.tables.is_inline(token.data):
            return State(Mode.IN_INLINE_SPAN, token.data)
        return self.state

    def _close(self, token: Token, skip_class: bool) -> State:
        if self.tables.is_inline(token.data):
            # Inline tags don't close the block.
            return replace(self.state, tag="")
        self._flush()
        return SCANNING

    def _text_token(self, token: Token, skip_class: bool) -> State:
        text = token.data.strip()
        state = self.state

        base = self.tables.tag_to_scope.get(state.tag)
        if text and base is not None and self.tables.is_inline(state.tag):
            # Linted twice: once here as e.g. a link, once in its paragraph.
            temp = advance(self.context, self.queue)
            label = scope_label(base, self.fmt)
            self._emit(Block.create(temp.render(), text, text, label))
            state = replace(state, tag="")

        self.queue.append(text)
        if text:
            redacted = self._redact_next or self._in_rst_literal() or skip_class
            rendered, raw = clean(text, self.fmt, redacted=redacted, inline=state.inline)
            self._redact_next = False
            self._text.append(rendered)
            self._raw.append(raw)
        return state

    def _comment(self, token: Token, skip_class: bool) -> State:
        text = token.data.strip()
        self.document.update_comments(text)
        self.queue.append(text)
        return self.state

    def _skip_open(self, token: Token, skip_class: bool) -> State:
        if token.data == self.state.tag:
            return replace(self.state, depth=self.state.depth + 1)
        return self.state

    def _skip_close(self, token: Token, skip_class: bool) -> State:
        if token.data != self.state.tag:
            return self.state
        if self.state.depth > 1:
            return replace(self.state, depth=self.state.depth - 1)
        log.debug("leaving <%s> in %s", token.data, self.document.path)
        self._flush()
        return SCANNING

    def _skip_text(self, token: Token, skip_class: bool) -> State:
        self.queue.append(token.data.strip())
        return self.state

    _TRANSITIONS: dict[tuple[Mode, TokenKind], Callable[..., State]] = {
        (Mode.SCANNING, TokenKind.START_TAG): _open,
        (Mode.SCANNING, TokenKind.SELF_CLOSING_TAG): _void,
        (Mode.SCANNING, TokenKind.END_TAG): _close,
        (Mode.SCANNING, TokenKind.TEXT): _text_token,
        (Mode.SCANNING, TokenKind.COMMENT): _comment,
        (Mode.IN_INLINE_SPAN, TokenKind.START_TAG): _open,
        (Mode.IN_INLINE_SPAN, TokenKind.SELF_CLOSING_TAG): _void,
        (Mode.IN_INLINE_SPAN, TokenKind.END_TAG): _close,
        (Mode.IN_INLINE_SPAN, TokenKind.TEXT): _text_token,
        (Mode.IN_INLINE_SPAN, TokenKind.COMMENT): _comment,
        (Mode.IN_SKIP_BLOCK, TokenKind.START_TAG): _skip_open,
        (Mode.IN_SKIP_BLOCK, TokenKind.END_TAG): _skip_close,
        (Mode.IN_SKIP_BLOCK, TokenKind.TEXT): _skip_text,
        (Mode.IN_SKIP_BLOCK, TokenKind.COMMENT): _comment,
    }

    # ---- attributes ----

    def _attributes(self, token: Token) -> None:
        self._last_class = token.attr("class")
        if not token.is_tag or token.kind is TokenKind.END_TAG:
            return
        if token.data in _ANCHORED_TAGS:
            for key, value in token.attrs:
                if key in _ANCHORED_ATTRS:
                    self.context.consume_text(value)
        if token.data == "img":
            for key, value in token.attrs:
                if key == "alt" and value:
                    label = f"text.attr.{key}"
                    self._emit(Block.create(self.context.render(), value, value, label))

    # ---- driver ----

    def walk(self, tokens: Iterable[Token]) -> Iterator[Submission]:
        """Yield every submission for the document, ending with summary and raw."""
        for token in tokens:
            if token.kind is TokenKind.END:
                break
            skip_class = self._has_skip_class()
            handler = self._TRANSITIONS.get((self.state.mode, token.kind))
            if handler is not None:
                self.state = handler(self, token, skip_class)
            self._attributes(token)
            yield from self._out
            self._out.clear()

        if self._text or self.queue:
            self._flush()
            yield from self._out
            self._out.clear()

        doc = self.document
        yield Submission(Block.create(doc.content, doc.summary_text, "", scope_label("summary", self.fmt)))
        yield Submission(Block.create("", doc.content, "", scope_label("raw", self.fmt)))


def walk_markup(
    document: Document,
    markup: bytes | str,
    context: str,
    tables: MarkupTables | None = None,
) -> Iterator[Submission]:
    """Tokenize *markup* and classify it against *context*."""
    walker = BlockWalker(document, ContextString(context), tables)
    return walker.walk(tokenize(markup))
