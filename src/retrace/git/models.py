"""Value objects for snapshots, annotations, and change ranges.

All models are frozen dataclasses with slots. A snapshot is a git commit
as seen through ``git log --compact-summary``; an annotation is an
annotated tag that marks the first snapshot of a named section.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

__all__ = [
    "Annotation",
    "ChangeRanges",
    "ChangedFile",
    "Position",
    "Snapshot",
    "TextRange",
]


@dataclass(frozen=True, slots=True)
class ChangedFile:
    """One entry of a compact-summary file list.

    Attributes:
        file_name: Path relative to the repository root.
        change_detail: Text right of the ``|`` (e.g. ``"3 ++-"``).
    """

    file_name: str
    change_detail: str


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable record of the working directory at one point in time.

    Attributes:
        id: Full commit hash.
        author: Author line value, ``"Name <email>"``.
        message: Commit message with the log indentation removed.
        timestamp: Author date.
        change_summary: ``"N files changed, ..."`` line, empty if none.
        changed_files: Files touched by the snapshot, in log order.
    """

    id: str
    author: str
    message: str
    timestamp: datetime
    change_summary: str = ""
    changed_files: tuple[ChangedFile, ...] = ()

    @property
    def short_id(self) -> str:
        return self.id[:7]


@dataclass(frozen=True, slots=True)
class Annotation:
    """Section marker attached to a snapshot.

    Attributes:
        name: Slugified tag name.
        label: Original label text as typed by the user.
        snapshot_id: Snapshot the tag points at.
    """

    name: str
    label: str
    snapshot_id: str


@dataclass(frozen=True, slots=True)
class Position:
    """1-based line and character position in a text file."""

    line: int
    character: int


@dataclass(frozen=True, slots=True)
class TextRange:
    """A span between two positions; ``start == end`` denotes a caret."""

    start: Position
    end: Position

    @classmethod
    def point(cls, line: int, character: int = 1) -> TextRange:
        position = Position(line, character)
        return cls(position, position)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True, slots=True)
class ChangeRanges:
    """Where the most recent change sits before and after it was applied.

    Attributes:
        before: Range in the parent's version of the file.
        after: Range in the snapshot's version of the file.
    """

    before: TextRange
    after: TextRange
