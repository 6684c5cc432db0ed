"""Output formatting helpers for retrace CLI commands."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from retrace.git.models import ChangeRanges, TextRange

__all__ = [
    "OutputFormat",
    "format_error",
    "format_json",
    "format_range",
    "format_ranges",
    "format_success",
    "format_warning",
]


class OutputFormat(str, Enum):
    """Supported output formats for listing commands.

    Values:
        TEXT: Human-readable text (default).
        JSON: Machine-readable JSON output.
    """

    TEXT = "text"
    JSON = "json"


def format_error(
    message: str, details: list[str] | None = None, suggestion: str | None = None
) -> str:
    """Format an error message with optional details and suggestion.

    Example:
        >>> print(format_error("No active session", suggestion="Run 'retrace start'"))
        Error: No active session
        Suggestion: Run 'retrace start'
    """
    lines = [f"Error: {message}"]

    if details:
        for detail in details:
            lines.append(f"  {detail}")

    if suggestion:
        lines.append(f"Suggestion: {suggestion}")

    return "\n".join(lines)


def format_success(message: str) -> str:
    return f"Success: {message}"


def format_warning(message: str) -> str:
    return f"Warning: {message}"


def format_json(data: Any) -> str:
    """Format data as JSON with 2-space indentation."""
    return json.dumps(data, indent=2)


def format_range(text_range: TextRange) -> str:
    """``line:col-line:col`` with 1-based positions.

    Example:
        >>> format_range(TextRange.point(3))
        '3:1-3:1'
    """
    start, end = text_range.start, text_range.end
    return f"{start.line}:{start.character}-{end.line}:{end.character}"


def format_ranges(ranges: ChangeRanges | None) -> str:
    if ranges is None:
        return "no textual change"
    return f"before {format_range(ranges.before)}  after {format_range(ranges.after)}"
