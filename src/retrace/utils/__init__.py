"""Shared utilities for retrace."""

from __future__ import annotations

from retrace.utils.atomic import atomic_write_text
from retrace.utils.job_queue import Job, JobQueue

__all__ = [
    "Job",
    "JobQueue",
    "atomic_write_text",
]
