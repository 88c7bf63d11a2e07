"""Converter orchestration: turn each markup dialect into HTML.

Markdown is rendered in-process with ``markdown-it-py``.  The other
dialects shell out to their reference tools (``rst2html``,
``asciidoctor``, ``xsltproc``, ``dita``), or, for Sphinx projects, read
pages that were already built.  Every converter produces a
:class:`ConvertedMarkup`: the HTML bytes plus the source text that
positions are later anchored against.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Protocol, runtime_checkable

from markdown_it import MarkdownIt

from prosescope.config import LintConfig
from prosescope.errors import (
    ConfigurationError,
    ConversionFailed,
    FilesystemError,
    ParseFailure,
    ToolMissing,
    UnsupportedFormat,
)
from prosescope.logging import get_logger
from prosescope.markup.preprocess import (
    ASCIIDOC_TEMPLATES,
    MARKDOWN_TEMPLATES,
    RST_TEMPLATES,
    IgnoreTemplates,
    mask_info_strings,
    preprocess,
)
from prosescope.models import Document

log = get_logger("converters")

Lookup = Callable[[str], "str | None"]

# ---------------------------------------------------------------------------
# Tool arguments
# ---------------------------------------------------------------------------

RST_ARGS = [
    "--quiet",
    "--halt=5",
    "--report=5",
    "--link-stylesheet",
    "--no-file-insertion",
    "--no-toc-backlinks",
    "--no-footnote-backlinks",
    "--no-section-numbering",
]

ADOC_ARGS = ["-s", "--quiet", "--safe-mode", "secure", "-"]

XSLT_ARGS = [
    "--stringparam", "use.extensions", "0",
    "--stringparam", "generate.toc", "nop",
]

PYTHON_NAMES = ["python", "py", "python.exe", "python3", "python3.exe", "py3"]

# Sphinx directives rst2html doesn't know are demoted to literal blocks.
_CODE_BLOCK_RE = re.compile(r"\.\. (?:raw|code(?:-block)?):: (\w+)")
_GLOSSARY_RE = re.compile(r"\.\. glossary::")

# Asciidoctor converts "'" to typographic quotes.
_ADOC_QUOTES = {
    "‘": "&apos;",
    "’": "&apos;",
    "&#8217;": "&apos;",
    "&rsquo;": "&apos;",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def find_tool(names: Iterable[str], lookup: Lookup = shutil.which) -> str | None:
    """Return the first of *names* found on PATH, or None."""
    for name in names:
        found = lookup(name)
        if found:
            return found
    return None


def run_tool(args: list[str], stdin: bytes | None, path: str) -> bytes:
    """Run a converter to completion and return its stdout.

    Blocks for the lifetime of the process; there is no timeout.
    """
    log.debug("running %s", " ".join(args))
    try:
        completed = subprocess.run(args, input=stdin, capture_output=True, check=True)
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        raise ConversionFailed(stderr or f"{args[0]} exited with status {exc.returncode}", path) from exc
    except OSError as exc:
        raise ConversionFailed(f"{args[0]}: {exc}", path) from exc
    return completed.stdout


def extract_body(html: bytes) -> bytes:
    """Return the contents of ``<body>``; bounds are clamped when markers are absent."""
    start = html.find(b"<body>\n")
    start = start + len(b"<body>\n") if start >= 0 else 0
    end = html.find(b"\n</body>")
    if end < 0:
        end = max(len(html) - 1, 0)
    return html[start:end]


def strip_head(html: bytes) -> bytes:
    """Drop ``<head>...</head>`` so page metadata is never tokenized as prose."""
    head = html.find(b"<head>")
    end = html.find(b"</head>")
    if head < 0 or end < head:
        return html
    return html[:head] + html[end + len(b"</head>"):]


# ---------------------------------------------------------------------------
# Converter contract
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConvertedMarkup:
    """HTML produced for one document, plus the text positions anchor to."""

    markup: bytes
    context: str


@runtime_checkable
class MarkupConverter(Protocol):
    """Produce HTML for a document in one of ``formats``."""

    name: str
    formats: tuple[str, ...]
    templates: IgnoreTemplates | None  # None = no preprocessing

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        ...


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


class MarkdownConverter:
    name = "markdown-it"
    formats = (".md",)
    templates = MARKDOWN_TEMPLATES

    def __init__(self) -> None:
        self._md = MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        try:
            rendered = self._md.render(prepared)
        except Exception as exc:
            raise ParseFailure(document.path, document.format, str(exc)) from exc
        return ConvertedMarkup(rendered.encode("utf-8"), mask_info_strings(document.content))


class HTMLConverter:
    name = "html"
    formats = (".html",)
    templates = None

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        return ConvertedMarkup(prepared.encode("utf-8"), document.content)


class RSTConverter:
    name = "rst2html"
    formats = (".rst",)
    templates = RST_TEMPLATES

    def __init__(self, lookup: Lookup = shutil.which, platform: str = os.name) -> None:
        self._lookup = lookup
        self._platform = platform

    def _command(self, path: str) -> list[str]:
        rst2html = find_tool(["rst2html", "rst2html.py"], self._lookup)
        if rst2html is None:
            raise ToolMissing("rst2html", path)
        if self._platform != "nt":
            return [rst2html, *RST_ARGS]
        # rst2html isn't directly executable on Windows.
        python = find_tool(PYTHON_NAMES, self._lookup)
        if python is None:
            raise ToolMissing("python", path)
        return [python, rst2html, *RST_ARGS]

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        args = self._command(document.path)
        source = _GLOSSARY_RE.sub(".. code::", prepared)
        source = _CODE_BLOCK_RE.sub("::", source)
        out = run_tool(args, source.encode("utf-8"), document.path)
        return ConvertedMarkup(extract_body(out.replace(b"\r", b"")), document.content)


class SphinxConverter:
    """Read the page Sphinx already built instead of running rst2html."""

    name = "sphinx"
    formats = (".rst",)
    templates = None

    def __init__(self, build_dir: str | Path) -> None:
        self.build_dir = Path(build_dir)

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        built = self.build_dir / "html" / (Path(document.path).stem + ".html")
        try:
            data = built.read_bytes()
        except OSError as exc:
            raise FilesystemError(f"cannot read {built}: {exc}", document.path) from exc
        return ConvertedMarkup(data, document.content)


class AsciidocConverter:
    name = "asciidoctor"
    formats = (".adoc",)
    templates = ASCIIDOC_TEMPLATES

    def __init__(self, lookup: Lookup = shutil.which) -> None:
        self._lookup = lookup

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        asciidoctor = find_tool(["asciidoctor"], self._lookup)
        if asciidoctor is None:
            raise ToolMissing("asciidoctor", document.path)
        out = run_tool([asciidoctor, *ADOC_ARGS], prepared.encode("utf-8"), document.path)
        html = out.decode("utf-8", errors="replace")
        for quote, entity in _ADOC_QUOTES.items():
            html = html.replace(quote, entity)
        return ConvertedMarkup(html.encode("utf-8"), document.content)


class XSLTConverter:
    name = "xsltproc"
    formats = (".xml",)
    templates = None

    def __init__(self, transform: str | None, lookup: Lookup = shutil.which) -> None:
        self.transform = transform
        self._lookup = lookup

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        xsltproc = find_tool(["xsltproc", "xsltproc.exe"], self._lookup)
        if xsltproc is None:
            raise ToolMissing("xsltproc", document.path)
        if not self.transform:
            raise ConfigurationError("no XSLT transform provided", document.path)
        args = [xsltproc, *XSLT_ARGS, self.transform, "-"]
        out = run_tool(args, prepared.encode("utf-8"), document.path)
        return ConvertedMarkup(out, document.content)


class DITAConverter:
    """Build the topic with DITA-OT into a temporary directory and read it back."""

    name = "dita"
    formats = (".dita",)
    templates = None

    def __init__(self, lookup: Lookup = shutil.which) -> None:
        self._lookup = lookup

    def convert(self, document: Document, prepared: str) -> ConvertedMarkup:
        dita = find_tool(["dita", "dita.bat"], self._lookup)
        if dita is None:
            raise ToolMissing("dita", document.path)

        try:
            with tempfile.TemporaryDirectory(prefix="dita-") as out_dir:
                args = [dita, "-i", document.path, "-f", "html5", "-o", out_dir, "--nav-toc=none"]
                run_tool(args, None, document.path)
                built = Path(out_dir) / (Path(document.path).stem + ".html")
                data = built.read_bytes()
        except OSError as exc:
            raise FilesystemError(f"temporary DITA output: {exc}", document.path) from exc

        return ConvertedMarkup(strip_head(data), document.content)


# ---------------------------------------------------------------------------
# Registry + orchestration
# ---------------------------------------------------------------------------


class ConverterRegistry:
    """Format identifier -> converter."""

    def __init__(self, converters: Iterable[MarkupConverter] = ()) -> None:
        self._by_format: dict[str, MarkupConverter] = {}
        for converter in converters:
            self.register(converter)

    @classmethod
    def default(
        cls,
        config: LintConfig | None = None,
        lookup: Lookup = shutil.which,
    ) -> ConverterRegistry:
        cfg = config or LintConfig()
        rst: MarkupConverter = (
            SphinxConverter(cfg.sphinx_build) if cfg.sphinx_build else RSTConverter(lookup)
        )
        return cls([
            MarkdownConverter(),
            HTMLConverter(),
            rst,
            AsciidocConverter(lookup),
            XSLTConverter(cfg.transform, lookup),
            DITAConverter(lookup),
        ])

    def register(self, converter: MarkupConverter) -> None:
        """Add *converter*, replacing any converter already bound to its formats."""
        for fmt in converter.formats:
            self._by_format[fmt] = converter

    def get(self, fmt: str) -> MarkupConverter | None:
        return self._by_format.get(fmt)

    def formats(self) -> list[str]:
        return sorted(self._by_format)


def convert(
    document: Document,
    registry: ConverterRegistry,
    config: LintConfig | None = None,
) -> ConvertedMarkup:
    """Preprocess *document* for its dialect and convert it to HTML."""
    cfg = config or LintConfig()
    converter = registry.get(document.format)
    if converter is None:
        raise UnsupportedFormat(document.format, document.path)

    prepared = document.content
    if converter.templates is not None:
        try:
            prepared = preprocess(
                document.content,
                document.format,
                converter.templates,
                cfg.token_ignores,
                cfg.block_ignores,
            )
        except ConfigurationError as exc:
            exc.path = exc.path or document.path
            raise

    log.debug("converting %s with %s", document.path, converter.name)
    return converter.convert(document, prepared)
