"""Recording sessions: repository state machine, projection and adapters' helpers.

Example:
    ```python
    from retrace.session import SessionRepository

    repo = await SessionRepository.open(Path.cwd(), "demo")
    await repo.save()
    ```
"""

from __future__ import annotations

from retrace.session.entries import (
    SectionEntry,
    SnapshotEntry,
    TimelineEntry,
    entry_label,
    timeline_entries,
)
from retrace.session.feed import (
    EntriesChanged,
    FullRefresh,
    Notification,
    ProjectionFeed,
    Subscriber,
    affected_snapshots,
)
from retrace.session.navigation import (
    StepPlan,
    is_single_file_step,
    plan_next,
    plan_previous,
)
from retrace.session.projection import Progress, Projection
from retrace.session.replay import Replayer
from retrace.session.repository import DEFAULT_COMMIT_MESSAGE, SessionRepository
from retrace.session.terminal import TerminalRecorder
from retrace.session.workspace import WorkspaceState, WorkspaceStateStore

__all__ = [
    # Repository
    "DEFAULT_COMMIT_MESSAGE",
    "SessionRepository",
    # Projection
    "Progress",
    "Projection",
    # Feed
    "EntriesChanged",
    "FullRefresh",
    "Notification",
    "ProjectionFeed",
    "Subscriber",
    "affected_snapshots",
    # Entries
    "SectionEntry",
    "SnapshotEntry",
    "TimelineEntry",
    "entry_label",
    "timeline_entries",
    # Navigation and replay
    "Replayer",
    "StepPlan",
    "is_single_file_step",
    "plan_next",
    "plan_previous",
    # Adapter state
    "TerminalRecorder",
    "WorkspaceState",
    "WorkspaceStateStore",
]
