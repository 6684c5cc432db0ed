"""Terminal output capture stored alongside the recorded files.

Output produced between two saves is buffered and written to a tracked file
right before the next snapshot, so each snapshot carries the terminal output
that accompanied it.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from retrace.logging import get_logger
from retrace.session.navigation import DEFAULT_TERMINAL_FILE
from retrace.utils.atomic import atomic_write_text

__all__ = ["TerminalRecorder"]

logger = get_logger(__name__)


class TerminalRecorder:
    """Buffers terminal output and writes it to the capture file on flush.

    Pass :meth:`flush` as the ``before_save`` hook of
    :meth:`SessionRepository.save`.

    Args:
        working_dir: Session root.
        file_name: Capture file name relative to the session root.
    """

    def __init__(
        self, working_dir: Path, file_name: str = DEFAULT_TERMINAL_FILE
    ) -> None:
        self._path = working_dir / file_name
        self._buffer: list[str] = []

    @property
    def path(self) -> Path:
        return self._path

    @property
    def buffered(self) -> str:
        return "".join(self._buffer)

    def append(self, data: str) -> None:
        self._buffer.append(data)

    async def flush(self) -> None:
        """Replace the capture file with the buffered output and clear it."""
        data = self.buffered
        await asyncio.to_thread(atomic_write_text, self._path, data)
        self._buffer.clear()
        logger.debug("terminal_flushed", path=str(self._path), chars=len(data))

    def read(self) -> str | None:
        """Capture file content at the checked-out snapshot, if present."""
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
