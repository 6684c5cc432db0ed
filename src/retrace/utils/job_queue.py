"""FIFO job queue that runs one async job at a time.

The queue is the only concurrency control in a session: every operation
that touches the backing repository or replaces the projection is a job,
so no two of them ever interleave.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from retrace.logging import get_logger

__all__ = ["Job", "JobQueue"]

logger = get_logger(__name__)

T = TypeVar("T")

#: A zero-argument coroutine function.
Job = Callable[[], Awaitable[T]]


class JobQueue:
    """Serialize async jobs in submission order.

    Guarantees:
    - at most one job body executes at a time
    - jobs run in FIFO order
    - a failing job raises only in its own awaiter; the queue moves on

    A job must not enqueue and await another job on the same queue. The
    inner job would wait behind the outer one forever.

    Example:
        ```python
        queue = JobQueue()
        head = await queue.enqueue(lambda: client.resolve_ref("HEAD"))
        ```
    """

    def __init__(self) -> None:
        self._pending: deque[tuple[Job[Any], asyncio.Future[Any]]] = deque()
        self._running = False
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """True while the drain loop is executing jobs."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of jobs waiting to start."""
        return len(self._pending)

    async def enqueue(self, job: Job[T]) -> T:
        """Submit a job and wait for its result.

        Args:
            job: Zero-argument coroutine function to run.

        Returns:
            Whatever the job returns.

        Raises:
            Exception: Whatever the job raised.
        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending.append((job, future))
        self._ensure_running()
        return await future

    def _ensure_running(self) -> None:
        if self._running:
            return
        self._running = True
        self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._pending:
                job, future = self._pending.popleft()
                if future.cancelled():
                    continue
                try:
                    result = await job()
                except Exception as e:  # noqa: BLE001
                    logger.debug("job_failed", error=str(e))
                    if not future.cancelled():
                        future.set_exception(e)
                else:
                    if not future.cancelled():
                        future.set_result(result)
        finally:
            self._running = False
