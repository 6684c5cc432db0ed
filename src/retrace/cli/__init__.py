"""Command-line adapter for retrace sessions."""

from __future__ import annotations

from retrace.cli.context import CLIContext, ExitCode, async_command

__all__ = ["CLIContext", "ExitCode", "async_command"]
