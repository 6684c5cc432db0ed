"""Step planning for next/previous navigation.

A step that changes exactly one source file can be animated: the adapter
selects the changed text before the step and moves the selection to the
changed text after it. Any other step is a plain restore.

Stepping backwards animates the change that head introduced, from its
``after`` range back to its ``before`` range.
"""

from __future__ import annotations

from dataclasses import dataclass

from retrace.git.models import Snapshot, TextRange
from retrace.session.repository import SessionRepository

__all__ = [
    "DEFAULT_TERMINAL_FILE",
    "StepPlan",
    "is_single_file_step",
    "plan_next",
    "plan_previous",
]

DEFAULT_TERMINAL_FILE = "terminal-data.txt"


@dataclass(frozen=True, slots=True)
class StepPlan:
    """What an adapter should do to take one step.

    Attributes:
        target_id: Snapshot to restore.
        file_name: The single changed file to show, if the step has one.
        from_range: Selection before the step, if animated.
        to_range: Selection after the step, if animated.
    """

    target_id: str
    file_name: str | None = None
    from_range: TextRange | None = None
    to_range: TextRange | None = None

    @property
    def animated(self) -> bool:
        return self.from_range is not None and self.to_range is not None


def is_single_file_step(
    snapshot: Snapshot, terminal_file: str = DEFAULT_TERMINAL_FILE
) -> bool:
    """True when a snapshot changes one file and leaves terminal output alone."""
    names = [changed.file_name for changed in snapshot.changed_files]
    return terminal_file not in names and len(names) == 1


async def _plan(
    repo: SessionRepository,
    target: Snapshot,
    animated: Snapshot,
    terminal_file: str,
    *,
    forward: bool,
) -> StepPlan:
    if not is_single_file_step(animated, terminal_file):
        return StepPlan(target_id=target.id)

    file_name = animated.changed_files[0].file_name
    ranges = await repo.change_ranges(animated.id)
    if ranges is None:
        return StepPlan(target_id=target.id, file_name=file_name)
    if forward:
        return StepPlan(target.id, file_name, ranges.before, ranges.after)
    return StepPlan(target.id, file_name, ranges.after, ranges.before)


async def plan_next(
    repo: SessionRepository, terminal_file: str = DEFAULT_TERMINAL_FILE
) -> StepPlan | None:
    """Plan a step forward, or None at the end of the timeline."""
    target = repo.next_snapshot()
    if target is None:
        return None
    return await _plan(repo, target, target, terminal_file, forward=True)


async def plan_previous(
    repo: SessionRepository, terminal_file: str = DEFAULT_TERMINAL_FILE
) -> StepPlan | None:
    """Plan a step back, or None at the start of the timeline."""
    target = repo.previous_snapshot()
    current = repo.head_snapshot()
    if target is None or current is None:
        return None
    return await _plan(repo, target, current, terminal_file, forward=False)
