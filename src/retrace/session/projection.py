"""In-memory projection of a session repository.

A :class:`Projection` is an immutable value. The session repository builds
a new one at the end of every successful job and publishes it; nothing ever
edits a published projection, so readers can never observe a half-applied
update.

Section queries are pure functions of the projection. A section starts at
an annotated snapshot and runs up to (not including) the next annotated
snapshot on the timeline, or to its end.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from retrace.exceptions import InternalConsistencyError
from retrace.git.models import Annotation, Snapshot

__all__ = ["Progress", "Projection"]


@dataclass(frozen=True, slots=True)
class Progress:
    """Status-line model: where ``head`` is within the timeline.

    Attributes:
        branch: Active timeline name.
        section_label: Label of the section containing head, if any.
        step: 1-based step of head within that section.
        step_count: Number of snapshots in that section.
    """

    branch: str
    section_label: str | None = None
    step: int | None = None
    step_count: int | None = None

    def __str__(self) -> str:
        if self.section_label is None:
            return f"[{self.branch}]"
        if self.step is None:
            return f"[{self.branch}]: {self.section_label}"
        return f"[{self.branch}]: {self.section_label} {self.step} / {self.step_count}"


@dataclass(frozen=True, slots=True)
class Projection:
    """Read-optimized view of the backing repository for one timeline.

    Attributes:
        branch: Active timeline (git branch) name.
        snapshots: Every snapshot fetched so far, keyed by id. Shared across
            timelines because ids are content hashes.
        ordered_ids: Active timeline, oldest first.
        head: Checked-out snapshot id; None while the history is empty.
        branch_head: Newest snapshot on the active timeline.
        annotations: Section markers keyed by snapshot id.
        working_dir_modified: ``git status`` reported modified files.

    Raises:
        InternalConsistencyError: If head or branch_head is not on the
            timeline, or a timeline id has no snapshot record.
    """

    branch: str
    snapshots: Mapping[str, Snapshot] = field(default_factory=dict)
    ordered_ids: tuple[str, ...] = ()
    head: str | None = None
    branch_head: str | None = None
    annotations: Mapping[str, Annotation] = field(default_factory=dict)
    working_dir_modified: bool = False

    def __post_init__(self) -> None:
        for label, snapshot_id in (
            ("head", self.head),
            ("branch head", self.branch_head),
        ):
            if snapshot_id is not None and snapshot_id not in self.ordered_ids:
                raise InternalConsistencyError(
                    f"{label} {snapshot_id} is not on timeline {self.branch}"
                )
        missing = [i for i in self.ordered_ids if i not in self.snapshots]
        if missing:
            raise InternalConsistencyError(
                f"No snapshot record for {', '.join(missing)}"
            )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def index_of(self, snapshot_id: str) -> int:
        """Position of a snapshot on the timeline.

        Raises:
            InternalConsistencyError: If the id is not on the timeline.
        """
        try:
            return self.ordered_ids.index(snapshot_id)
        except ValueError:
            raise InternalConsistencyError(
                f"Snapshot {snapshot_id} expected on timeline {self.branch} "
                "but absent"
            ) from None

    def get_snapshot(self, snapshot_id: str) -> Snapshot | None:
        return self.snapshots.get(snapshot_id)

    def get_annotation(self, snapshot_id: str) -> Annotation | None:
        return self.annotations.get(snapshot_id)

    @property
    def head_index(self) -> int | None:
        if self.head is None:
            return None
        return self.index_of(self.head)

    @property
    def head_snapshot(self) -> Snapshot | None:
        return None if self.head is None else self.snapshots[self.head]

    @property
    def is_detached(self) -> bool:
        """True while browsing history (head is behind the branch tip)."""
        return self.head != self.branch_head

    def next_id(self) -> str | None:
        """Snapshot after head, or None at the end of the timeline."""
        index = self.head_index
        if index is None or index + 1 >= len(self.ordered_ids):
            return None
        return self.ordered_ids[index + 1]

    def previous_id(self) -> str | None:
        """Snapshot before head, or None at the start of the timeline."""
        index = self.head_index
        if index is None or index == 0:
            return None
        return self.ordered_ids[index - 1]

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _next_section_index(self, index: int) -> int:
        for later in range(index + 1, len(self.ordered_ids)):
            if self.ordered_ids[later] in self.annotations:
                return later
        return len(self.ordered_ids)

    def section_start(self, snapshot_id: str) -> str | None:
        """Nearest annotated snapshot at or before ``snapshot_id``."""
        index = self.index_of(snapshot_id)
        for earlier in range(index, -1, -1):
            if self.ordered_ids[earlier] in self.annotations:
                return self.ordered_ids[earlier]
        return None

    def section_commit_count(self, snapshot_id: str) -> int:
        """Snapshots in the section starting at ``snapshot_id``.

        Returns 0 when ``snapshot_id`` is not annotated.
        """
        if snapshot_id not in self.annotations:
            return 0
        index = self.index_of(snapshot_id)
        return self._next_section_index(index) - index

    def is_head_in_section(self, snapshot_id: str) -> bool:
        """Whether head lies in ``[snapshot_id, next section start)``."""
        index = self.index_of(snapshot_id)
        head_index = self.head_index
        if head_index is None:
            return False
        return index <= head_index < self._next_section_index(index)

    def step_number_of_head(self, snapshot_id: str) -> int | None:
        """1-based offset of head within the section, or None if outside it."""
        if not self.is_head_in_section(snapshot_id):
            return None
        head_index = self.head_index
        assert head_index is not None
        return head_index - self.index_of(snapshot_id) + 1

    def progress(self) -> Progress:
        """Status-line position of head."""
        if self.head is None:
            return Progress(branch=self.branch)
        start = self.section_start(self.head)
        if start is None:
            return Progress(branch=self.branch)
        return Progress(
            branch=self.branch,
            section_label=self.annotations[start].label,
            step=self.step_number_of_head(start),
            step_count=self.section_commit_count(start),
        )
