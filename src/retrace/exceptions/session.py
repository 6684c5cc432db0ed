"""Session state machine and output parsing exceptions."""

from __future__ import annotations

from retrace.exceptions.base import RetraceError


class ParseError(RetraceError):
    """Git output did not match the format the parser expects.

    Attributes:
        message: Human-readable error message.
        line: The offending line content.
        line_number: 1-based line number within the parsed text.
    """

    def __init__(
        self,
        message: str,
        *,
        line: str | None = None,
        line_number: int | None = None,
    ) -> None:
        self.line = line
        self.line_number = line_number
        if line is not None:
            message = f"{message} (line {line_number}: {line!r})"
        super().__init__(message)


class InternalConsistencyError(RetraceError):
    """The in-memory projection disagrees with the backing repository.

    Raised when an id that must be present in the ordered snapshot list is
    missing. Never retried; rebuilding the session from the repository is
    the only recovery.
    """


class SessionNotReadyError(RetraceError):
    """A session operation was requested before ``initialize`` completed."""

    def __init__(
        self, message: str = "Session repository is not initialized"
    ) -> None:
        super().__init__(message)
