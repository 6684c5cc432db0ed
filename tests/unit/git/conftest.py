"""Shared fixtures for git tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from retrace.git.client import GitClient
from retrace.runners.command import CommandRunner
from retrace.runners.models import CommandResult

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_C = "c" * 40

#: Two records as ``git log --compact-summary --no-color`` prints them.
COMPACT_LOG = f"""\
commit {SHA_B} (HEAD -> demo)
Author: Test User <test@example.com>
Date:   Tue Oct 20 09:15:02 2026 +0200

    Update by retrace.

 src/app.py | 3 ++-
 1 file changed, 2 insertions(+), 1 deletion(-)

commit {SHA_A}
Author: Test User <test@example.com>
Date:   Mon Oct 5 18:01:44 2026 +0200

    Update by retrace.

 README.md (new)       | 1 +
 src/app.py (new)      | 4 ++++
 terminal-data.txt (new) | 0
 3 files changed, 5 insertions(+)
"""


def make_result(
    *,
    returncode: int = 0,
    stdout: str = "",
    stderr: str = "",
    duration_ms: int = 50,
) -> CommandResult:
    """Create a CommandResult with convenient defaults."""
    return CommandResult(
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
        duration_ms=duration_ms,
    )


@pytest.fixture
def mock_runner() -> AsyncMock:
    """Create a mock CommandRunner that returns success by default."""
    runner = AsyncMock(spec=CommandRunner)
    runner.run.return_value = make_result()
    return runner


@pytest.fixture
def git_client(mock_runner: AsyncMock, temp_dir: Path) -> GitClient:
    """Create a GitClient with a mocked runner."""
    return GitClient(cwd=temp_dir, runner=mock_runner)
