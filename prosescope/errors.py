"""Document-scoped failures raised by the markup pipeline."""

from __future__ import annotations


class MarkupError(Exception):
    """Base class: a failure that aborts linting of one document."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"[{self.path}] {self.message}"
        return self.message


class ConfigurationError(MarkupError):
    """An ignore glob/pattern or a required setting is invalid."""


class ToolMissing(MarkupError):
    """A required external converter or interpreter is not on PATH."""

    def __init__(self, tool: str, path: str = "") -> None:
        super().__init__(f"{tool} not found", path)
        self.tool = tool


class ConversionFailed(MarkupError):
    """An external converter exited nonzero or could not be started.

    No finer position mapping exists for a failed conversion, so the
    failure is always reported at line 1.
    """

    def __init__(self, output: str, path: str = "", line: int = 1) -> None:
        super().__init__(output or "conversion failed", path)
        self.output = output
        self.line = line


class ParseFailure(MarkupError):
    """The embedded converter or a conversion step failed internally."""

    def __init__(self, path: str, fmt: str, reason: str = "") -> None:
        message = f"parse failure for {fmt}; is your markup valid?"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, path)
        self.format = fmt


class FilesystemError(MarkupError):
    """Creating, reading, or removing temporary conversion output failed."""


class UnsupportedFormat(MarkupError):
    """No converter is registered for the document's format."""

    def __init__(self, fmt: str, path: str = "") -> None:
        super().__init__(f"no converter registered for '{fmt}'", path)
        self.format = fmt
