"""Subprocess execution for the git command layer."""

from __future__ import annotations

from retrace.runners.command import CommandRunner
from retrace.runners.models import CommandResult

__all__ = [
    "CommandResult",
    "CommandRunner",
]
