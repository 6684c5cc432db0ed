"""Timeline entries as adapters display them.

An entry is either a plain snapshot or the first snapshot of a section.
Adapters list entries and render their labels; every dispatch on the entry
kind is checked for exhaustiveness.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias, assert_never

from retrace.git.models import Annotation, Snapshot
from retrace.session.projection import Projection

__all__ = [
    "SectionEntry",
    "SnapshotEntry",
    "TimelineEntry",
    "entry_label",
    "timeline_entries",
]


@dataclass(frozen=True, slots=True)
class SnapshotEntry:
    snapshot: Snapshot


@dataclass(frozen=True, slots=True)
class SectionEntry:
    snapshot: Snapshot
    annotation: Annotation


TimelineEntry: TypeAlias = SnapshotEntry | SectionEntry


def timeline_entries(
    projection: Projection, *, sections_only: bool = False
) -> list[TimelineEntry]:
    """Entries of the active timeline, oldest first.

    Args:
        projection: Projection to read.
        sections_only: Only list snapshots that start a section.
    """
    entries: list[TimelineEntry] = []
    for snapshot_id in projection.ordered_ids:
        snapshot = projection.snapshots[snapshot_id]
        annotation = projection.get_annotation(snapshot_id)
        if annotation is not None:
            entries.append(SectionEntry(snapshot, annotation))
        elif not sections_only:
            entries.append(SnapshotEntry(snapshot))
    return entries


def _snapshot_label(snapshot: Snapshot) -> str:
    if len(snapshot.changed_files) == 1:
        changed = snapshot.changed_files[0]
        return f"{changed.file_name} | {changed.change_detail}"
    return snapshot.change_summary or snapshot.message or snapshot.id


def entry_label(entry: TimelineEntry, projection: Projection) -> str:
    """Display text for an entry.

    Sections show their label with the step count, and the step of head
    when head is inside the section. A snapshot touching a single file
    shows that file's change; anything else shows its change summary.
    """
    if isinstance(entry, SectionEntry):
        snapshot_id = entry.snapshot.id
        count = projection.section_commit_count(snapshot_id)
        step = projection.step_number_of_head(snapshot_id)
        if step is not None:
            return f"{entry.annotation.label} ({step} / {count})"
        return f"{entry.annotation.label} ({count})"
    elif isinstance(entry, SnapshotEntry):
        return _snapshot_label(entry.snapshot)
    else:
        assert_never(entry)
