"""Tests for the unified config loader (.prosescope.yml)."""

import prosescope.config as config_mod
from prosescope.config import (
    DEFAULT_IGNORED_SCOPES,
    DEFAULT_SKIP_CLASSES,
    DEFAULT_SKIP_TAGS,
    TAG_TO_SCOPE,
    LintConfig,
    MarkupTables,
    load_config,
)


class TestDefaultConfig:
    def test_no_config_file_returns_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path))
        assert cfg.skipped_scopes == []
        assert cfg.ignored_classes == []
        assert cfg.token_ignores == {}
        assert cfg.sphinx_build is None
        assert cfg.transform is None
        assert cfg.project_config_path is None
        assert cfg.user_config_path is None


class TestLoadConfig:
    def test_loads_full_config(self, tmp_path):
        config = tmp_path / ".prosescope.yml"
        config.write_text("""\
markup:
  skipped_scopes: [script, pre]
  ignored_classes: no-lint
  ignored_scopes: [code]
  token_ignores:
    "*.md":
      - '(\\$[^$]+\\$)'
  block_ignores:
    "*.{md,rst}": '(?s)(<math>.+?</math>)'
  sphinx_build: _build
  transform: docbook.xsl
""")
        cfg = load_config(str(tmp_path))
        assert cfg.skipped_scopes == ["script", "pre"]
        assert cfg.ignored_classes == ["no-lint"]
        assert cfg.ignored_scopes == ["code"]
        assert cfg.token_ignores == {"*.md": [r"(\$[^$]+\$)"]}
        assert cfg.block_ignores == {"*.{md,rst}": ["(?s)(<math>.+?</math>)"]}
        assert cfg.sphinx_build == "_build"
        assert cfg.transform == "docbook.xsl"
        assert cfg.project_config_path == str(config)

    def test_empty_file_returns_defaults(self, tmp_path):
        (tmp_path / ".prosescope.yml").write_text("")
        assert load_config(str(tmp_path)).skipped_scopes == []

    def test_malformed_yaml_returns_defaults(self, tmp_path):
        (tmp_path / ".prosescope.yml").write_text(": : invalid yaml [[[")
        assert load_config(str(tmp_path)).skipped_scopes == []

    def test_walks_up_to_find_config(self, tmp_path):
        """Config in a parent dir is found when linting a subdirectory."""
        (tmp_path / ".prosescope.yml").write_text("markup:\n  transform: a.xsl\n")
        subdir = tmp_path / "docs" / "guide"
        subdir.mkdir(parents=True)
        assert load_config(str(subdir)).transform == "a.xsl"

    def test_explicit_path_skips_discovery(self, tmp_path):
        (tmp_path / ".prosescope.yml").write_text("markup:\n  transform: project.xsl\n")
        explicit = tmp_path / "other.yml"
        explicit.write_text("markup:\n  sphinx_build: out\n")
        cfg = load_config(str(tmp_path), config_path=str(explicit))
        assert cfg.transform is None
        assert cfg.sphinx_build == "out"
        assert cfg.project_config_path == str(explicit)


class TestUserConfig:
    def test_project_overrides_user_per_key(self, tmp_path, monkeypatch):
        user = tmp_path / "home" / "config.yml"
        user.parent.mkdir()
        user.write_text("markup:\n  transform: user.xsl\n  sphinx_build: user_build\n")
        monkeypatch.setattr(config_mod, "USER_CONFIG_PATH", user)

        project = tmp_path / "proj"
        project.mkdir()
        (project / ".prosescope.yml").write_text("markup:\n  transform: project.xsl\n")

        cfg = load_config(str(project))
        assert cfg.transform == "project.xsl"
        assert cfg.sphinx_build == "user_build"
        assert cfg.user_config_path == str(user)


class TestMarkupTables:
    def test_defaults(self):
        tables = MarkupTables.from_config(None)
        assert tables.skip_tags == DEFAULT_SKIP_TAGS
        assert tables.is_inline("a")
        assert not tables.is_inline("p")

    def test_default_construction(self):
        tables = MarkupTables()
        assert tables.tag_to_scope is TAG_TO_SCOPE
        assert tables.tag_to_scope["a"] == "link"

    def test_strikethrough_tags_are_inline(self):
        tables = MarkupTables()
        assert tables.is_inline("s")
        assert tables.is_inline("strike")

    def test_empty_config_keeps_defaults(self):
        tables = MarkupTables.from_config(LintConfig())
        assert tables.skip_tags == DEFAULT_SKIP_TAGS
        assert tables.skip_classes == DEFAULT_SKIP_CLASSES
        assert tables.ignored_scopes == DEFAULT_IGNORED_SCOPES

    def test_overrides_and_extensions(self):
        cfg = LintConfig(skipped_scopes=["aside"], ignored_classes=["no-lint"],
                         ignored_scopes=["kbd"])
        tables = MarkupTables.from_config(cfg)
        assert tables.skip_tags == frozenset({"aside"})
        assert tables.skip_classes == DEFAULT_SKIP_CLASSES | {"no-lint"}
        assert tables.ignored_scopes == frozenset({"kbd"})
        assert "pre" in DEFAULT_SKIP_TAGS
