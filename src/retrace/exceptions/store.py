"""Backing-store (git) exceptions."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from retrace.exceptions.base import RetraceError


class StoreError(RetraceError):
    """Base exception for failures talking to the backing git repository.

    Attributes:
        message: Human-readable error message.
        command: The git subcommand that failed (e.g. ``"checkout"``).
    """

    def __init__(self, message: str, *, command: str | None = None) -> None:
        self.command = command
        super().__init__(message)


class ProcessError(StoreError):
    """A git subprocess exited non-zero with an unrecognized message.

    Attributes:
        message: Human-readable error message.
        command: The git subcommand that failed.
        argv: Full argument vector that was executed.
        returncode: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str] = (),
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = tuple(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        command = self.argv[1] if len(self.argv) > 1 else None
        super().__init__(message, command=command)

    @property
    def output(self) -> str:
        """Combined stdout and stderr for diagnosis."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class NothingToCommitError(StoreError):
    """``git commit`` found no staged changes."""

    def __init__(self, message: str = "Nothing to commit") -> None:
        super().__init__(message, command="commit")


class NotARepositoryError(StoreError):
    """Operation requires a git repository but the directory has none.

    Attributes:
        path: Directory that is not a repository.
    """

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = path
        super().__init__(message, command="rev-parse")
