"""retrace exception hierarchy.

All exceptions can be imported from this package:
    from retrace.exceptions import ProcessError, ParseError, RetraceError
"""

from __future__ import annotations

from retrace.exceptions.base import RetraceError
from retrace.exceptions.config import ConfigError
from retrace.exceptions.runner import RunnerError, WorkingDirectoryError
from retrace.exceptions.session import (
    InternalConsistencyError,
    ParseError,
    SessionNotReadyError,
)
from retrace.exceptions.store import (
    NotARepositoryError,
    NothingToCommitError,
    ProcessError,
    StoreError,
)

__all__ = [
    # Base
    "RetraceError",
    # Config
    "ConfigError",
    # Runner
    "RunnerError",
    "WorkingDirectoryError",
    # Session
    "InternalConsistencyError",
    "ParseError",
    "SessionNotReadyError",
    # Store
    "NotARepositoryError",
    "NothingToCommitError",
    "ProcessError",
    "StoreError",
]
