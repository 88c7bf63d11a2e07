"""Tests for data models."""

from prosescope.errors import ConversionFailed
from prosescope.models import Block, Document, LintResult, normalize_format, scope_label


class TestFormats:
    def test_aliases(self):
        assert normalize_format(".markdown") == ".md"
        assert normalize_format(".RST") == ".rst"
        assert normalize_format(".asciidoc") == ".adoc"
        assert normalize_format(".txt") is None

    def test_scope_label(self):
        assert scope_label("link", ".md") == "link.md"


class TestDocument:
    def test_format_from_suffix(self):
        assert Document("guide.markdown", "").format == ".md"
        assert Document("notes.TXT", "").format == ".txt"

    def test_explicit_format_kept(self):
        assert Document("page", "", format=".html").format == ".html"

    def test_from_path(self, tmp_path):
        p = tmp_path / "a.rst"
        p.write_text("Title\n=====\n", encoding="utf-8")
        doc = Document.from_path(p)
        assert doc.format == ".rst"
        assert doc.content == "Title\n=====\n"

    def test_line_count(self):
        assert Document("a.md", "").line_count == 1
        assert Document("a.md", "a\nb\n").line_count == 3

    def test_summary(self):
        doc = Document("a.md", "")
        doc.add_summary("One.")
        doc.add_summary("Two.")
        assert doc.summary_text == "One. Two. "


class TestControlComments:
    def test_off_and_on(self):
        doc = Document("a.md", "")
        doc.update_comments("prosescope off")
        assert doc.comments["off"] is True
        doc.update_comments(" prosescope on ")
        assert doc.comments["off"] is False

    def test_rule_toggle(self):
        doc = Document("a.md", "")
        doc.update_comments("prosescope Style.Passive = NO")
        doc.update_comments("prosescope Style.Spelling = YES")
        assert doc.comments == {"Style.Passive": True, "Style.Spelling": False}

    def test_other_comments_ignored(self):
        doc = Document("a.md", "")
        doc.update_comments("just a note")
        assert doc.comments == {}


class TestBlock:
    def test_empty_context_falls_back_to_text(self):
        assert Block.create("", "alt text", "", "text.attr.alt").context == "alt text"

    def test_context_kept(self):
        assert Block.create("ctx", "t", "r", "s").context == "ctx"


class TestLintResult:
    def test_ok(self):
        assert LintResult("a.md", ".md").ok
        assert not LintResult("a.rst", ".rst", error=ConversionFailed("bad", "a.rst")).ok

    def test_error_str_includes_path(self):
        assert str(ConversionFailed("bad", "a.rst")) == "[a.rst] bad"
