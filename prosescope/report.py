"""Report rendering: text and JSON views of classified blocks."""

from __future__ import annotations

import json
from typing import Any

import prosescope
from prosescope.errors import ConversionFailed, MarkupError
from prosescope.models import LintResult, Submission

_EXCERPT_WIDTH = 60


def _submissions(result: LintResult) -> list[Submission]:
    return [m for m in result.matches if isinstance(m, Submission)]


def _excerpt(text: str, width: int = _EXCERPT_WIDTH) -> str:
    flat = " ".join(text.split())
    if len(flat) > width:
        return flat[: width - 1] + "…"
    return flat


def _scope_name(sub: Submission) -> str:
    return "(prose)" if sub.prose else sub.block.scope


# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------


def render_text(results: list[LintResult], include_raw: bool = False) -> str:
    """Produce human-friendly text output, one section per document."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(f"prosescope {prosescope.__version__} block report")
    lines.append("=" * 60)

    total = 0
    for result in sorted(results, key=lambda r: r.path):
        lines.append(f"{result.path}  [{result.format}]")
        if result.error is not None:
            lines.append(f"  ✗ {type(result.error).__name__}: {result.error.message}")
            lines.append("")
            continue
        for sub in _submissions(result):
            if sub.block.scope.startswith("raw.") and not include_raw:
                continue
            total += 1
            lines.append(f"  {_scope_name(sub):<28} {_excerpt(sub.block.text)}")
        lines.append("")

    failed = sum(1 for r in results if not r.ok)
    lines.append("-" * 60)
    lines.append(f"Documents: {len(results)} linted, {failed} failed; blocks: {total}")
    lines.append("=" * 60)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


def _error_to_dict(err: MarkupError) -> dict[str, Any]:
    doc: dict[str, Any] = {"type": type(err).__name__, "message": err.message}
    if isinstance(err, ConversionFailed):
        doc["line"] = err.line
    return doc


def _submission_to_dict(sub: Submission) -> dict[str, Any]:
    return {
        "scope": sub.block.scope,
        "prose": sub.prose,
        "text": sub.block.text,
        "raw": sub.block.raw,
        "line_offset": sub.line_offset,
        "column_offset": sub.column_offset,
    }


def render_json(results: list[LintResult]) -> str:
    """Produce stable JSON output (documents sorted by path)."""
    ordered = sorted(results, key=lambda r: r.path)
    doc: dict[str, Any] = {
        "tool": "prosescope",
        "version": prosescope.__version__,
        "summary": {
            "documents": len(results),
            "failed": sum(1 for r in results if not r.ok),
            "blocks": sum(len(_submissions(r)) for r in results),
        },
        "documents": [
            {
                "path": r.path,
                "format": r.format,
                "error": _error_to_dict(r.error) if r.error is not None else None,
                "blocks": [_submission_to_dict(s) for s in _submissions(r)],
            }
            for r in ordered
        ],
    }
    return json.dumps(doc, indent=2, ensure_ascii=False)
