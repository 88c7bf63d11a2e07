"""HTML token stream over converted markup.

BeautifulSoup builds the tree; :func:`tokenize` flattens it back into
start/end/text/comment tokens so the walker can pull one token at a
time.  Text and attribute values arrive already unescaped and tag names
are lower-cased.  Void elements (``img``, ``br``...) come out as a single
self-closing token.
"""

from __future__ import annotations

import enum
import html
from dataclasses import dataclass
from typing import Iterator

from bs4 import BeautifulSoup
from bs4.element import Comment, PageElement, PreformattedString, Tag


class TokenKind(enum.Enum):
    START_TAG = "start"
    END_TAG = "end"
    SELF_CLOSING_TAG = "self_closing"
    TEXT = "text"
    COMMENT = "comment"
    END = "eof"


@dataclass(frozen=True)
class Token:
    """One unit of converted markup."""

    kind: TokenKind
    data: str = ""  # tag name, text, or comment body
    attrs: tuple[tuple[str, str], ...] = ()

    def attr(self, key: str) -> str:
        for k, v in self.attrs:
            if k == key:
                return v
        return ""

    @property
    def is_tag(self) -> bool:
        return self.kind in (TokenKind.START_TAG, TokenKind.END_TAG, TokenKind.SELF_CLOSING_TAG)


def _attrs(tag: Tag) -> tuple[tuple[str, str], ...]:
    return tuple((k, v or "") for k, v in tag.attrs.items())


def _flatten(root: Tag) -> Iterator[Token]:
    # Explicit stack: converter output can nest deeper than the recursion limit.
    stack: list[tuple[Tag | None, Iterator[PageElement]]] = [(None, iter(root.contents))]
    while stack:
        tag, children = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            if tag is not None:
                yield Token(TokenKind.END_TAG, tag.name)
            continue

        if isinstance(child, Tag):
            if child.is_empty_element:
                yield Token(TokenKind.SELF_CLOSING_TAG, child.name, _attrs(child))
                continue
            yield Token(TokenKind.START_TAG, child.name, _attrs(child))
            stack.append((child, iter(child.contents)))
        elif isinstance(child, Comment):
            yield Token(TokenKind.COMMENT, html.unescape(str(child)))
        elif isinstance(child, PreformattedString):
            # Doctype, CDATA, declarations, processing instructions.
            continue
        else:
            yield Token(TokenKind.TEXT, str(child))


def tokenize(markup: bytes | str) -> Iterator[Token]:
    """Yield the tokens of *markup*, always ending with a ``TokenKind.END`` token.

    The stream is single-pass; tokenizing again requires the markup again.
    """
    text = markup.decode("utf-8", errors="replace") if isinstance(markup, bytes) else markup
    # Keep ``class`` as one string; the walker splits it itself.
    soup = BeautifulSoup(text, "html.parser", multi_valued_attributes=None)
    yield from _flatten(soup)
    yield Token(TokenKind.END)
