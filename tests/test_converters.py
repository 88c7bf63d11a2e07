"""Tests for converter orchestration."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from prosescope.config import LintConfig
from prosescope.errors import (
    ConfigurationError,
    ConversionFailed,
    FilesystemError,
    ToolMissing,
    UnsupportedFormat,
)
from prosescope.markup.converters import (
    AsciidocConverter,
    ConverterRegistry,
    DITAConverter,
    HTMLConverter,
    MarkdownConverter,
    RSTConverter,
    SphinxConverter,
    XSLTConverter,
    convert,
    extract_body,
    find_tool,
    strip_head,
)
from prosescope.models import Document

RUN = "prosescope.markup.converters.subprocess.run"


def _everywhere(name):
    return f"/usr/bin/{name}"


def _nowhere(name):
    return None


def _completed(stdout=b""):
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=b"")


class TestHelpers:
    def test_find_tool_returns_first_hit(self):
        found = find_tool(["a", "b", "c"], lambda n: f"/bin/{n}" if n != "a" else None)
        assert found == "/bin/b"

    def test_find_tool_none(self):
        assert find_tool(["a"], _nowhere) is None

    def test_extract_body(self):
        html = b"<html><body>\n<p>Hi</p>\n</body></html>"
        assert extract_body(html) == b"<p>Hi</p>"

    def test_extract_body_without_markers(self):
        assert extract_body(b"<p>x</p>\n") == b"<p>x</p>"
        assert extract_body(b"") == b""

    def test_strip_head(self):
        html = b"<html><head><title>T</title></head><body>x</body></html>"
        assert strip_head(html) == b"<html><body>x</body></html>"

    def test_strip_head_without_head(self):
        assert strip_head(b"<body>x</body>") == b"<body>x</body>"


class TestMarkdown:
    def test_renders_commonmark(self):
        doc = Document("a.md", "# Hi")
        out = MarkdownConverter().convert(doc, doc.content)
        assert out.markup == b"<h1>Hi</h1>\n"
        assert out.context == "# Hi"

    def test_tables_and_strikethrough(self):
        src = "| a | b |\n|---|---|\n| 1 | 2 |\n\n~~gone~~\n"
        out = MarkdownConverter().convert(Document("a.md", src), src)
        assert b"<td>1</td>" in out.markup
        assert b"<s>gone</s>" in out.markup

    def test_raw_html_passes_through(self):
        src = "<div>hi</div>\n"
        out = MarkdownConverter().convert(Document("a.md", src), src)
        assert b"<div>hi</div>" in out.markup

    def test_context_masks_info_strings(self):
        src = "```json\n{}\n```\n"
        out = MarkdownConverter().convert(Document("a.md", src), src)
        assert out.context == "```****\n{}\n```\n"


class TestHTML:
    def test_passthrough(self):
        doc = Document("a.html", "<p>x</p>")
        out = HTMLConverter().convert(doc, doc.content)
        assert out.markup == b"<p>x</p>"
        assert out.context == "<p>x</p>"


class TestRST:
    def test_missing_tool(self):
        doc = Document("a.rst", "Hi")
        with pytest.raises(ToolMissing) as info:
            RSTConverter(_nowhere).convert(doc, doc.content)
        assert info.value.tool == "rst2html"
        assert info.value.path == "a.rst"

    def test_runs_rst2html_and_extracts_body(self):
        src = ".. code-block:: python\n\n   x = 1\n"
        doc = Document("a.rst", src)
        stdout = b"<html><body>\n<p>Hi</p>\r\n</body></html>"
        with patch(RUN, return_value=_completed(stdout)) as run:
            out = RSTConverter(_everywhere, platform="posix").convert(doc, src)
        args = run.call_args.args[0]
        assert args[0] == "/usr/bin/rst2html"
        assert "--quiet" in args
        assert run.call_args.kwargs["input"] == b"::\n\n   x = 1\n"
        assert out.markup == b"<p>Hi</p>"
        assert out.context == src

    def test_windows_runs_through_python(self):
        doc = Document("a.rst", "Hi")
        with patch(RUN, return_value=_completed()) as run:
            RSTConverter(_everywhere, platform="nt").convert(doc, "Hi")
        args = run.call_args.args[0]
        assert args[:2] == ["/usr/bin/python", "/usr/bin/rst2html"]

    def test_windows_without_python(self):
        lookup = lambda n: "/usr/bin/rst2html" if n == "rst2html" else None  # noqa: E731
        with pytest.raises(ToolMissing) as info:
            RSTConverter(lookup, platform="nt").convert(Document("a.rst", "Hi"), "Hi")
        assert info.value.tool == "python"

    def test_nonzero_exit(self):
        err = subprocess.CalledProcessError(2, ["rst2html"], output=b"", stderr=b"bad markup")
        with patch(RUN, side_effect=err):
            with pytest.raises(ConversionFailed) as info:
                RSTConverter(_everywhere).convert(Document("a.rst", "Hi"), "Hi")
        assert info.value.output == "bad markup"
        assert info.value.line == 1

    def test_cannot_start(self):
        with patch(RUN, side_effect=OSError("exec format error")):
            with pytest.raises(ConversionFailed):
                RSTConverter(_everywhere).convert(Document("a.rst", "Hi"), "Hi")


class TestSphinx:
    def test_reads_built_page(self, tmp_path):
        (tmp_path / "html").mkdir()
        (tmp_path / "html" / "page.html").write_bytes(b"<p>Built</p>")
        doc = Document("docs/page.rst", "Built")
        out = SphinxConverter(tmp_path).convert(doc, doc.content)
        assert out.markup == b"<p>Built</p>"

    def test_missing_page(self, tmp_path):
        with pytest.raises(FilesystemError):
            SphinxConverter(tmp_path).convert(Document("page.rst", ""), "")


class TestAsciidoc:
    def test_missing_tool(self):
        with pytest.raises(ToolMissing):
            AsciidocConverter(_nowhere).convert(Document("a.adoc", "x"), "x")

    def test_typographic_quotes_replaced(self):
        with patch(RUN, return_value=_completed("<p>It’s</p>".encode("utf-8"))) as run:
            out = AsciidocConverter(_everywhere).convert(Document("a.adoc", "It's"), "It's")
        assert run.call_args.args[0][-1] == "-"
        assert out.markup == b"<p>It&apos;s</p>"


class TestXSLT:
    def test_requires_transform(self):
        with pytest.raises(ConfigurationError):
            XSLTConverter(None, _everywhere).convert(Document("a.xml", "<a/>"), "<a/>")

    def test_missing_tool(self):
        with pytest.raises(ToolMissing):
            XSLTConverter("t.xsl", _nowhere).convert(Document("a.xml", "<a/>"), "<a/>")

    def test_runs_transform(self):
        with patch(RUN, return_value=_completed(b"<p>x</p>")) as run:
            out = XSLTConverter("t.xsl", _everywhere).convert(Document("a.xml", "<a/>"), "<a/>")
        args = run.call_args.args[0]
        assert args[-2:] == ["t.xsl", "-"]
        assert run.call_args.kwargs["input"] == b"<a/>"
        assert out.markup == b"<p>x</p>"


class TestDITA:
    def test_reads_output_and_removes_temp_dir(self, tmp_path):
        seen = []

        def fake_run(args, **kwargs):
            out_dir = Path(args[args.index("-o") + 1])
            seen.append(out_dir)
            (out_dir / "topic.html").write_bytes(
                b"<html><head><title>x</title></head><body><p>Body</p></body></html>"
            )
            return _completed()

        doc = Document(str(tmp_path / "topic.dita"), "<topic/>")
        with patch(RUN, side_effect=fake_run):
            out = DITAConverter(_everywhere).convert(doc, doc.content)
        assert out.markup == b"<html><body><p>Body</p></body></html>"
        assert not seen[0].exists()

    def test_temp_dir_removed_on_failure(self, tmp_path):
        seen = []

        def fake_run(args, **kwargs):
            seen.append(Path(args[args.index("-o") + 1]))
            raise subprocess.CalledProcessError(1, args, output=b"", stderr=b"boom")

        doc = Document(str(tmp_path / "topic.dita"), "<topic/>")
        with patch(RUN, side_effect=fake_run):
            with pytest.raises(ConversionFailed):
                DITAConverter(_everywhere).convert(doc, doc.content)
        assert not seen[0].exists()

    def test_missing_output(self, tmp_path):
        doc = Document(str(tmp_path / "topic.dita"), "<topic/>")
        with patch(RUN, return_value=_completed()):
            with pytest.raises(FilesystemError):
                DITAConverter(_everywhere).convert(doc, doc.content)


class TestRegistry:
    def test_default_formats(self):
        registry = ConverterRegistry.default(lookup=_nowhere)
        assert registry.formats() == [".adoc", ".dita", ".html", ".md", ".rst", ".xml"]
        assert isinstance(registry.get(".rst"), RSTConverter)

    def test_sphinx_build_selects_sphinx(self):
        registry = ConverterRegistry.default(LintConfig(sphinx_build="_build"), _nowhere)
        assert isinstance(registry.get(".rst"), SphinxConverter)

    def test_register_replaces(self):
        registry = ConverterRegistry.default(lookup=_nowhere)
        html = HTMLConverter()
        html.formats = (".md",)
        registry.register(html)
        assert registry.get(".md") is html


class TestConvert:
    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormat) as info:
            convert(Document("notes.txt", "x"), ConverterRegistry.default(lookup=_nowhere))
        assert info.value.path == "notes.txt"

    def test_preprocesses_before_converting(self):
        cfg = LintConfig(token_ignores={"*.md": [r"(\$[^$]+\$)"]})
        out = convert(Document("a.md", "Use $x$ here"), ConverterRegistry.default(cfg), cfg)
        assert out.markup == b"<p>Use <code>$x$</code> here</p>\n"

    def test_bad_glob_reports_document(self):
        cfg = LintConfig(token_ignores={"*.{md": ["(x)"]})
        with pytest.raises(ConfigurationError) as info:
            convert(Document("a.md", "x"), ConverterRegistry.default(cfg), cfg)
        assert info.value.path == "a.md"

    def test_html_not_preprocessed(self):
        cfg = LintConfig(token_ignores={"*": [r"(\$[^$]+\$)"]})
        out = convert(Document("a.html", "<p>$x$</p>"), ConverterRegistry.default(cfg), cfg)
        assert out.markup == b"<p>$x$</p>"
