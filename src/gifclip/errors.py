"""Error hierarchy for gifclip.

Every failure the CLI reports is a ``GifclipError`` subclass tagged with an
``ErrorCategory``. Nothing at this layer retries: a failed lookup or a failed
external tool ends the clip operation.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gifclip.subtitles.parser import SubtitleEntry


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    VALIDATION = "validation"  # Bad user input
    CONFIGURATION = "configuration"  # Bad settings or missing tools
    RESOURCE = "resource"  # Missing or unreadable file
    EXTERNAL = "external"  # yt-dlp / ffmpeg failed
    INTERNAL = "internal"  # Bug in code


class GifclipError(Exception):
    """Base exception for gifclip errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether the error is recoverable
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ReadError(GifclipError):
    """Subtitle source (or another input file) could not be read."""

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context)


class DialogueNotFoundError(GifclipError):
    """No subtitle entry matched a dialogue query.

    Attributes:
        query: The query text exactly as the user typed it
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, query: str):
        super().__init__(f'Could not find dialogue: "{query}"')
        self.query = query


class InvalidRangeError(GifclipError):
    """Range queries resolved to entries in the wrong order.

    Attributes:
        from_entry: Entry matched by the ``from`` query
        to_entry: Entry matched by the ``to`` query
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, from_entry: SubtitleEntry, to_entry: SubtitleEntry):
        super().__init__(
            "End dialogue occurs before start dialogue",
            context={
                "from_start": from_entry.start,
                "from_end": from_entry.end,
                "to_start": to_entry.start,
                "to_end": to_entry.end,
            },
        )
        self.from_entry = from_entry
        self.to_entry = to_entry


class ClipRequestError(GifclipError):
    """Clip options are missing or contradict each other."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context)


class TimestampError(GifclipError):
    """Manual timestamp is malformed or the range is empty."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context)


class ConfigurationError(GifclipError):
    """Configuration error.

    Examples: unreadable settings file, unsupported platform for managed tools.
    """

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context)


class ToolNotFoundError(ConfigurationError):
    """A required external binary (yt-dlp, ffmpeg) is not available."""

    def __init__(self, tool: str, message: str | None = None):
        super().__init__(message or f"{tool} not found", context={"tool": tool})
        self.tool = tool


class ExternalToolError(GifclipError):
    """An external tool ran but failed.

    Attributes:
        tool: Name of the tool
        returncode: Process exit code, if the process ran at all
    """

    category = ErrorCategory.EXTERNAL

    def __init__(
        self,
        tool: str,
        message: str,
        returncode: int | None = None,
    ):
        context: dict = {"tool": tool}
        if returncode is not None:
            context["returncode"] = returncode
        super().__init__(message, context)
        self.tool = tool
        self.returncode = returncode


def format_error_for_display(error: Exception) -> str:
    """Format an error message for user display.

    Args:
        error: Error to format

    Returns:
        Human-readable error message
    """
    if isinstance(error, GifclipError):
        category = error.category.value

        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            return f"[{category}] {error.message} ({context_str})"

        return f"[{category}] {error.message}"

    return f"[error] {type(error).__name__}: {error}"
