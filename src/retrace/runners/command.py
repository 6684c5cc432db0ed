"""Command runner for async subprocess execution.

This module provides the CommandRunner class that executes one external
command per call and captures its output. Backing-store operations run
without a timeout: a hung git process blocks its caller until it exits.
"""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING

from retrace.exceptions import WorkingDirectoryError
from retrace.logging import get_logger
from retrace.runners.models import CommandResult

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["CommandRunner"]

logger = get_logger(__name__)


class CommandRunner:
    """Execute commands in a working directory with a fixed environment.

    Attributes:
        cwd: Working directory for command execution.
        env: Environment variables merged over the parent environment for
            every command.

    Example:
        ```python
        runner = CommandRunner(cwd=Path("/project"), env={"LC_ALL": "C"})
        result = await runner.run(["git", "status"])
        if result.success:
            print(result.stdout)
        ```
    """

    def __init__(
        self,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self._cwd = cwd
        self._env = env or {}

    @property
    def cwd(self) -> Path | None:
        """Working directory for command execution."""
        return self._cwd

    def _validate_cwd(self, cwd: Path | None) -> None:
        """Validate working directory exists.

        Raises:
            WorkingDirectoryError: If directory does not exist.
        """
        if cwd is not None and not cwd.is_dir():
            raise WorkingDirectoryError(
                f"Working directory does not exist: {cwd}",
                path=cwd,
            )

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Execute a command and wait for it to exit.

        Args:
            command: Command and arguments as a sequence (no shell expansion).
            cwd: Override working directory for this command.

        Returns:
            CommandResult with returncode, stdout, stderr and duration_ms.

        Raises:
            WorkingDirectoryError: If working directory does not exist.
        """
        effective_cwd = cwd if cwd is not None else self._cwd
        self._validate_cwd(effective_cwd)

        start_time = time.monotonic()
        stdout_str = ""
        stderr_str = ""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=effective_cwd,
                env={**os.environ, **self._env},
            )
            stdout_bytes, stderr_bytes = await process.communicate()
            returncode = process.returncode or 0
            stdout_str = stdout_bytes.decode("utf-8", errors="replace")
            stderr_str = stderr_bytes.decode("utf-8", errors="replace")
        except FileNotFoundError:
            returncode = 127
            stderr_str = f"Command not found: {command[0]}"
        except PermissionError:
            returncode = 126
            stderr_str = f"Permission denied: {command[0]}"

        result = CommandResult(
            returncode=returncode,
            stdout=stdout_str,
            stderr=stderr_str,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )
        logger.debug(
            "command_finished",
            command=list(command),
            returncode=result.returncode,
            duration_ms=result.duration_ms,
        )
        return result
