"""Unified configuration loader for prosescope.

Configuration is resolved in priority order: **project > user > defaults**.

1. **Project-level**: ``.prosescope.yml`` in (or above) the linted directory.
2. **User-level**: ``~/.prosescope/config.yml``.
3. **Built-in defaults**: the tag tables in :data:`DEFAULT_SKIP_TAGS` and
   friends.

Both files share the same format::

    markup:
      skipped_scopes: [script, style, pre, figure]
      ignored_classes: [no-lint]
      ignored_scopes: [tt, code]
      token_ignores:
        "*.md":
          - '(\\$+[^\\n$]+\\$+)'
      block_ignores:
        "*.{md,rst}":
          - '(?s)(<math>.+?</math>)'
      sphinx_build: _build
      transform: docbook.xsl

Project-level values override user-level values key by key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml

CONFIG_FILENAME = ".prosescope.yml"
USER_CONFIG_DIR = Path.home() / ".prosescope"
USER_CONFIG_PATH = USER_CONFIG_DIR / "config.yml"

# ---------------------------------------------------------------------------
# Built-in tag tables
# ---------------------------------------------------------------------------

# Tags whose contents are never linted.
DEFAULT_SKIP_TAGS: frozenset[str] = frozenset({"script", "style", "pre", "figure"})

# Classes whose text is redacted:
#   - ``problematic`` marks rst2html processing errors (e.g. file-insertion URLs).
#   - ``pre`` marks rst2html code spans.
DEFAULT_SKIP_CLASSES: frozenset[str] = frozenset({"problematic", "pre"})

# Inline tags whose text is redacted as soon as it is seen.
DEFAULT_IGNORED_SCOPES: frozenset[str] = frozenset({"tt", "code"})

INLINE_TAGS: frozenset[str] = frozenset({
    "b", "big", "i", "small", "abbr", "acronym", "cite", "dfn", "em", "kbd",
    "strong", "a", "br", "img", "span", "sub", "sup", "code", "tt", "del",
    # markdown-it renders ~~strikethrough~~ as <s>.
    "s", "strike",
})

TAG_TO_SCOPE: Mapping[str, str] = MappingProxyType({
    "th": "text.table.header",
    "td": "text.table.cell",
    "li": "text.list",
    "blockquote": "text.blockquote",
    # Inline scopes don't inherit from ``text``; their text is also part
    # of the enclosing block.
    "strong": "strong",
    "b": "strong",
    "a": "link",
    "em": "emphasis",
    "i": "emphasis",
    "code": "code",
})

HEADING_RE = re.compile(r"^h\d$")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintConfig:
    """The ``markup`` section of the configuration."""

    skipped_scopes: list[str] = field(default_factory=list)
    ignored_classes: list[str] = field(default_factory=list)
    ignored_scopes: list[str] = field(default_factory=list)
    token_ignores: dict[str, list[str]] = field(default_factory=dict)
    block_ignores: dict[str, list[str]] = field(default_factory=dict)
    sphinx_build: str | None = None
    transform: str | None = None

    # Where the effective config was loaded from (None = defaults only).
    project_config_path: str | None = None
    user_config_path: str | None = None


@dataclass(frozen=True)
class MarkupTables:
    """Lookup tables used by the walker, fixed for the lifetime of a linter."""

    skip_tags: frozenset[str] = DEFAULT_SKIP_TAGS
    skip_classes: frozenset[str] = DEFAULT_SKIP_CLASSES
    ignored_scopes: frozenset[str] = DEFAULT_IGNORED_SCOPES
    inline_tags: frozenset[str] = INLINE_TAGS
    tag_to_scope: Mapping[str, str] = field(default_factory=lambda: TAG_TO_SCOPE, hash=False)

    @classmethod
    def from_config(cls, cfg: LintConfig | None) -> MarkupTables:
        """Merge user overrides into the defaults.

        ``skipped_scopes`` and ``ignored_scopes`` replace their defaults;
        ``ignored_classes`` extends the default skip classes.
        """
        if cfg is None:
            return cls()
        return cls(
            skip_tags=frozenset(cfg.skipped_scopes) or DEFAULT_SKIP_TAGS,
            skip_classes=DEFAULT_SKIP_CLASSES | frozenset(cfg.ignored_classes),
            ignored_scopes=frozenset(cfg.ignored_scopes) or DEFAULT_IGNORED_SCOPES,
        )

    def is_inline(self, tag: str) -> bool:
        return tag in self.inline_tags


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    lint_path: str | None = None,
    config_path: str | Path | None = None,
) -> LintConfig:
    """Load merged configuration (project > user > defaults).

    Parameters
    ----------
    lint_path:
        Directory to search for ``.prosescope.yml``.  When *None*, only
        the user-level file (and defaults) are considered.
    config_path:
        Explicit config file path.  When given, *only* this file is
        loaded (no project/user search).
    """
    if config_path is not None:
        raw = _load_yaml(Path(config_path).expanduser())
        cfg = _raw_to_config(raw)
        cfg.project_config_path = str(config_path)
        return cfg

    user_raw = _load_yaml(USER_CONFIG_PATH)
    user_source = str(USER_CONFIG_PATH) if user_raw else None

    project_raw: dict | None = None
    project_source: str | None = None
    if lint_path is not None:
        project_path = _find_project_config(lint_path)
        if project_path is not None:
            project_raw = _load_yaml(project_path)
            project_source = str(project_path)

    cfg = _raw_to_config(_merge_raw(project_raw, user_raw))
    cfg.project_config_path = project_source
    cfg.user_config_path = user_source
    return cfg


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_project_config(lint_path: str) -> Path | None:
    """Search for ``.prosescope.yml`` in *lint_path* and ancestors."""
    p = Path(lint_path)
    if p.is_file():
        p = p.parent
    candidates = [p / CONFIG_FILENAME]
    for parent in p.parents:
        candidates.append(parent / CONFIG_FILENAME)
        if (parent / ".git").exists():
            break
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict | None:
    """Load a YAML file, returning *None* on missing/invalid files."""
    path = path.expanduser()
    if not path.is_file():
        return None
    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError):
        return None
    return raw if isinstance(raw, dict) else None


def _merge_raw(project: dict | None, user: dict | None) -> dict:
    """Merge project and user raw dicts (project wins per key)."""
    base: dict = {}
    if user and isinstance(user.get("markup"), dict):
        base["markup"] = dict(user["markup"])
    if project and isinstance(project.get("markup"), dict):
        base.setdefault("markup", {})
        base["markup"].update(project["markup"])
    return base


def _raw_to_config(raw: dict | None) -> LintConfig:
    """Convert a raw YAML dict to a ``LintConfig``."""
    if not raw:
        return LintConfig()

    section = raw.get("markup", {})
    if not isinstance(section, dict):
        return LintConfig()

    return LintConfig(
        skipped_scopes=_as_list(section.get("skipped_scopes", [])),
        ignored_classes=_as_list(section.get("ignored_classes", [])),
        ignored_scopes=_as_list(section.get("ignored_scopes", [])),
        token_ignores=_as_pattern_map(section.get("token_ignores", {})),
        block_ignores=_as_pattern_map(section.get("block_ignores", {})),
        sphinx_build=_as_optional_str(section.get("sphinx_build")),
        transform=_as_optional_str(section.get("transform")),
    )


def _as_list(val: object) -> list[str]:
    """Coerce a value to a list of strings."""
    if isinstance(val, list):
        return [str(v) for v in val]
    if isinstance(val, str):
        return [val]
    return []


def _as_pattern_map(val: object) -> dict[str, list[str]]:
    """Coerce ``{glob: pattern | [patterns]}`` to ``{glob: [patterns]}``."""
    if not isinstance(val, dict):
        return {}
    return {str(k): _as_list(v) for k, v in val.items()}


def _as_optional_str(val: object) -> str | None:
    if val is None or val == "":
        return None
    return str(val)
