"""CLI: click-based command-line interface."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from prosescope.config import load_config
from prosescope.linter import BlockCollector, Linter
from prosescope.logging import configure_logging
from prosescope.markup.converters import ConverterRegistry
from prosescope.models import FORMATS, Document
from prosescope.report import render_json, render_text


@click.group()
def main() -> None:
    """prosescope: markup normalization and scope tagging for prose linting."""


# ───────────────────────────────────────────────────────────────────
# blocks
# ───────────────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", default="text",
              type=click.Choice(["text", "json"], case_sensitive=False),
              help="Output format.")
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Config file (skips .prosescope.yml discovery).")
@click.option("--raw", "include_raw", is_flag=True, default=False,
              help="Include the raw.<format> block in text output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Log converter invocations and walker decisions.")
@click.option("--log-file", default=None,
              type=click.Path(dir_okay=False, path_type=Path),
              help="Also write log records to this file.")
def blocks(
    paths: tuple[str, ...],
    fmt: str,
    config_path: str | None,
    include_raw: bool,
    verbose: bool,
    log_file: Path | None,
) -> None:
    """Print the classified blocks of each document."""
    configure_logging(verbose=verbose, log_file=log_file)

    first = Path(paths[0]).resolve()
    cfg = load_config(lint_path=str(first.parent), config_path=config_path)
    linter = Linter(BlockCollector(), cfg)

    results = []
    for path in paths:
        try:
            document = Document.from_path(path)
        except OSError as exc:
            click.echo(f"Error: cannot read {path}: {exc}", err=True)
            sys.exit(1)
        results.append(linter.lint_document(document))

    if fmt == "json":
        click.echo(render_json(results))
    else:
        click.echo(render_text(results, include_raw=include_raw))

    sys.exit(0 if all(r.ok for r in results) else 1)


# ───────────────────────────────────────────────────────────────────
# formats
# ───────────────────────────────────────────────────────────────────

@main.command()
def formats() -> None:
    """List recognized extensions and the converter used for each."""
    registry = ConverterRegistry.default(load_config())
    click.echo(f"{'Extension':<12} {'Format':<8} {'Converter'}")
    click.echo("-" * 36)
    for ext, fmt in sorted(FORMATS.items()):
        converter = registry.get(fmt)
        name = converter.name if converter is not None else "-"
        click.echo(f"{ext:<12} {fmt:<8} {name}")
