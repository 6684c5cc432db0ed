"""Automatic replay: step forward through a timeline with a pause between steps."""

from __future__ import annotations

import asyncio

from retrace.logging import get_logger
from retrace.session.repository import SessionRepository

__all__ = ["Replayer"]

logger = get_logger(__name__)


class Replayer:
    """Drives :meth:`SessionRepository.next` until the end or a stop request.

    Each step is its own job and publishes before the next one starts.
    Stopping takes effect between steps; steps already taken stay applied.

    Args:
        repo: Initialized session repository.
        delay: Seconds to wait between steps.
    """

    def __init__(self, repo: SessionRepository, delay: float = 1.0) -> None:
        self._repo = repo
        self._delay = delay
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask the replay to halt after its current step.

        A stop requested before :meth:`run` starts makes it take no steps.
        """
        self._stop.set()

    def reset(self) -> None:
        """Clear a previous stop request so the replayer can run again."""
        self._stop.clear()

    async def run(self, until: str | None = None) -> int:
        """Replay forward.

        Args:
            until: Stop once this snapshot id is head.

        Returns:
            Number of steps taken.
        """
        steps = 0
        while not self._stop.is_set():
            if until is not None and self._repo.head == until:
                break
            if not await self._repo.next():
                break
            steps += 1
            logger.debug("replay_step", step=steps, head=self._repo.head)
            if self._repo.next_snapshot() is None:
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._delay)
            except TimeoutError:
                pass
        logger.info("replay_finished", steps=steps, stopped=self._stop.is_set())
        return steps
