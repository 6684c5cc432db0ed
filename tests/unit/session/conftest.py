"""Shared fixtures for session tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from retrace.git.models import Annotation, ChangedFile, Snapshot
from retrace.session.projection import Projection
from retrace.session.repository import SessionRepository

BASE_TIME = datetime(2026, 10, 19, 9, 0, 0, tzinfo=UTC)


def snapshot_id(n: int) -> str:
    return f"{n:040x}"


def make_snapshot(
    n: int,
    *,
    files: tuple[str, ...] = ("app.py",),
    summary: str | None = None,
) -> Snapshot:
    """Snapshot number ``n`` touching ``files``."""
    count = len(files)
    return Snapshot(
        id=snapshot_id(n),
        author="Test User <test@example.com>",
        message="Update by retrace.",
        timestamp=BASE_TIME + timedelta(minutes=n),
        change_summary=summary
        if summary is not None
        else f"{count} file{'s' if count != 1 else ''} changed, 1 insertion(+)",
        changed_files=tuple(ChangedFile(name, "1 +") for name in files),
    )


def make_projection(
    count: int,
    *,
    sections: dict[int, str] | None = None,
    head: int | None = None,
    branch: str = "demo",
) -> Projection:
    """Projection of ``count`` snapshots with sections at the given indices.

    ``head`` defaults to the branch tip.
    """
    snapshots = [make_snapshot(n) for n in range(count)]
    ids = tuple(s.id for s in snapshots)
    annotations = {
        ids[index]: Annotation(name=label.lower(), label=label, snapshot_id=ids[index])
        for index, label in (sections or {}).items()
    }
    tip = ids[-1] if ids else None
    return Projection(
        branch=branch,
        snapshots={s.id: s for s in snapshots},
        ordered_ids=ids,
        head=ids[head] if head is not None else tip,
        branch_head=tip,
        annotations=annotations,
    )


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest_asyncio.fixture
async def repo(session_dir: Path) -> AsyncIterator[SessionRepository]:
    """Session repository initialized on ``demo`` in an empty directory."""
    yield await SessionRepository.open(session_dir, "demo")


@pytest_asyncio.fixture
async def five_step_repo(
    repo: SessionRepository, session_dir: Path
) -> AsyncIterator[SessionRepository]:
    """Session with five saved snapshots, each appending a line to notes.txt."""
    lines: list[str] = []
    for n in range(5):
        lines.append(f"step {n}")
        write(session_dir / "notes.txt", "\n".join(lines) + "\n")
        assert await repo.save()
    yield repo
