"""Preprocessor: neutralize front matter and user-ignored spans before conversion.

Ignored spans are not deleted: they are rewritten into the dialect's own
code syntax (an inline code span or a literal block) so the converter
passes them through as code, which the walker then never lints.
"""

from __future__ import annotations

import fnmatch
import re
import textwrap
from dataclasses import dataclass
from typing import Iterable, Mapping

from prosescope.errors import ConfigurationError
from prosescope.logging import get_logger

log = get_logger("preprocess")

FRONT_MATTER_RE = re.compile(r"^(?:---|\+\+\+)\n(.+?)\n(?:---|\+\+\+)", re.DOTALL)

# Extended info strings (```callout{'title': 'NOTE'}) confuse converters.
INFO_STRING_RE = re.compile(r"```.+")

# ---------------------------------------------------------------------------
# Per-dialect replacement templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IgnoreTemplates:
    """How a dialect spells an inline code span and a literal block.

    ``{}`` in each template receives the ignored text.  With
    ``indent_blocks`` the whole match is indented four spaces, which
    whitespace-sensitive dialects need for a literal block.
    """

    block: str
    inline: str
    indent_blocks: bool = False

    def render_block(self, text: str) -> str:
        if self.indent_blocks:
            text = textwrap.indent(text, "    ", lambda _line: True)
        return self.block.format(text)

    def render_inline(self, text: str) -> str:
        return self.inline.format(text)


MARKDOWN_TEMPLATES = IgnoreTemplates(block="\n```\n{}\n```\n", inline="`{}`")
RST_TEMPLATES = IgnoreTemplates(block="\n::\n\n{}\n", inline="``{}``", indent_blocks=True)
ASCIIDOC_TEMPLATES = IgnoreTemplates(block="\n----\n{}\n----\n", inline="`{}`")


# ---------------------------------------------------------------------------
# Glob matching
# ---------------------------------------------------------------------------


def _split_alternatives(body: str) -> list[str]:
    """Split ``a,b{c,d}`` on top-level commas only."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in body:
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    parts.append("".join(current))
    return parts


def expand_braces(pattern: str) -> list[str]:
    """Expand ``*.{md,rst}`` into ``["*.md", "*.rst"]``.

    Raises :class:`ConfigurationError` for unbalanced braces.
    """
    start = pattern.find("{")
    if start < 0:
        if "}" in pattern:
            raise ConfigurationError(f"invalid glob '{pattern}': unbalanced '}}'")
        return [pattern]

    depth = 0
    end = -1
    for i in range(start, len(pattern)):
        if pattern[i] == "{":
            depth += 1
        elif pattern[i] == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end < 0:
        raise ConfigurationError(f"invalid glob '{pattern}': unbalanced '{{'")

    prefix, body, suffix = pattern[:start], pattern[start + 1:end], pattern[end + 1:]
    expanded: list[str] = []
    for alt in _split_alternatives(body):
        expanded.extend(expand_braces(prefix + alt + suffix))
    return expanded


def glob_matches(glob: str, fmt: str) -> bool:
    """Return True if the section *glob* (e.g. ``*.md``) selects *fmt*."""
    return any(fnmatch.fnmatchcase(fmt, g) for g in expand_braces(glob))


# ---------------------------------------------------------------------------
# Pattern helpers
# ---------------------------------------------------------------------------


def _compile_all(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile *patterns*, dropping (and logging) any that are invalid."""
    compiled: list[re.Pattern[str]] = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error as exc:
            log.warning("dropping ignore pattern %r: %s", p, exc)
    return compiled


def _first_group(m: re.Match[str]) -> str:
    if m.re.groups < 1:
        return ""
    return m.group(1) or ""


def mask_info_strings(content: str) -> str:
    """Replace fenced-code info strings with ``*`` of the same length.

    Keeps rule matches from being located inside an info string (e.g. a
    match for ``json`` landing on `````json``).
    """

    def _mask(m: re.Match[str]) -> str:
        info = m.group(0).split("`")[-1]
        return "```" + "*" * len(info)

    return INFO_STRING_RE.sub(_mask, content)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def preprocess(
    content: str,
    fmt: str,
    templates: IgnoreTemplates,
    token_ignores: Mapping[str, list[str]] | None = None,
    block_ignores: Mapping[str, list[str]] | None = None,
) -> str:
    """Return *content* ready for conversion; *content* itself is untouched."""
    s = FRONT_MATTER_RE.sub(lambda m: templates.render_block(m.group(1)), content, count=1)
    s = INFO_STRING_RE.sub("```", s)

    for glob, patterns in (token_ignores or {}).items():
        if not glob_matches(glob, fmt):
            continue
        for pat in _compile_all(patterns):
            s = pat.sub(lambda m: templates.render_inline(_first_group(m)), s)

    for glob, patterns in (block_ignores or {}).items():
        if not glob_matches(glob, fmt):
            continue
        for pat in _compile_all(patterns):
            if templates.indent_blocks:
                s = pat.sub(lambda m: templates.render_block(m.group(0)), s)
            else:
                s = pat.sub(lambda m: templates.render_block(_first_group(m)), s)

    return s
