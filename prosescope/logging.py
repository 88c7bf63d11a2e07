"""Logging helpers for prosescope.

Every module logs through ``get_logger("<module>")`` so a
single call to :func:`configure_logging` (done by the CLI) controls the
whole package.  Library callers that never configure logging get the
standard-library default: warnings and above on stderr.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "prosescope"

CONSOLE_FORMAT = "[prosescope] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``prosescope.<name>``, or the package logger itself."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: str | Path | None = None
) -> logging.Logger:
    """Route package logs to stderr and, optionally, to *log_file*.

    Console output is WARNING and up unless *verbose*; the file, when
    given, receives the same records with timestamps and logger names.
    Calling this again replaces the handlers installed last time.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), level, CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
