"""Parsers for git command output.

The compact-summary log parser is an explicit line state machine. git
prints the log newest first; records are collected in that order and the
result is reversed so callers always receive snapshots oldest first.

Expected record layout::

    commit 3f2a1c0...
    Merge: 1a2b3c4 5d6e7f8          (optional)
    Author: Test User <test@example.com>
    Date:   Mon Oct 19 10:00:00 2026 +0000

        Update by retrace.

     hello.txt (new) | 1 +
     1 file changed, 1 insertion(+)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from retrace.exceptions import ParseError
from retrace.git.models import Annotation, ChangedFile, Snapshot

__all__ = [
    "parse_commit_log",
    "parse_hash_list",
    "parse_tag_record",
    "render_commit_log",
    "slugify",
]

_HEADER_RE = re.compile(r"^commit (?P<id>[0-9a-f]{7,64})(?: \(.*\))?$")
_MERGE_RE = re.compile(r"^Merge: ")
_AUTHOR_RE = re.compile(r"^Author:\s*(?P<author>.*)$")
_DATE_RE = re.compile(r"^Date:\s+(?P<date>.+)$")
_MESSAGE_RE = re.compile(r"^ {4}(?P<text>.*)$")
_FILE_RE = re.compile(r"^ (?P<path>\S.*?)\s+\|\s+(?P<detail>.*?)\s*$")
_SUMMARY_RE = re.compile(r"^ (?P<summary>\d+ files? changed.*)$")
_HASH_RE = re.compile(r"^[0-9a-f]{7,64}$")

#: Markers ``--compact-summary`` appends to a path: (new), (gone), (mode +x)...
_PATH_MARKER_RE = re.compile(r"\s+\((?:new|gone)(?: [+-][xl])?\)$|\s+\(mode [+-][xl]\)$")

#: git's default ``Date:`` format, e.g. ``Mon Oct 19 10:00:00 2026 +0000``.
_GIT_DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class _State(Enum):
    BEGIN = "begin"
    AUTHOR = "author"
    DATE = "date"
    MESSAGE_BEGIN = "message-begin"
    MESSAGE_MIDDLE = "message-middle"
    FILESET = "fileset"
    END = "end"


@dataclass
class _Draft:
    """Mutable accumulator for the record being parsed."""

    id: str
    author: str = ""
    timestamp: datetime | None = None
    message_lines: list[str] = field(default_factory=list)
    change_summary: str = ""
    changed_files: list[ChangedFile] = field(default_factory=list)

    def build(self) -> Snapshot:
        assert self.timestamp is not None
        return Snapshot(
            id=self.id,
            author=self.author,
            message="\n".join(self.message_lines).strip("\n"),
            timestamp=self.timestamp,
            change_summary=self.change_summary,
            changed_files=tuple(self.changed_files),
        )


def _parse_date(value: str, line: str, line_number: int) -> datetime:
    try:
        return datetime.strptime(value.strip(), _GIT_DATE_FORMAT)
    except ValueError as e:
        raise ParseError(
            "Unrecognized commit date", line=line, line_number=line_number
        ) from e


def _strip_path_marker(path: str) -> str:
    return _PATH_MARKER_RE.sub("", path)


def parse_commit_log(text: str) -> list[Snapshot]:
    """Parse ``git log --compact-summary --no-color`` output.

    Args:
        text: Raw command output (newest record first).

    Returns:
        Snapshots ordered oldest first.

    Raises:
        ParseError: If a line does not fit the current parser state.
    """
    snapshots: list[Snapshot] = []
    state = _State.BEGIN
    draft: _Draft | None = None

    def accept() -> None:
        nonlocal draft
        if draft is not None:
            snapshots.append(draft.build())
            draft = None

    for line_number, line in enumerate(text.split("\n"), start=1):
        if state is _State.BEGIN:
            if not line:
                continue
            match = _HEADER_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected commit header", line=line, line_number=line_number
                )
            draft = _Draft(id=match.group("id"))
            state = _State.AUTHOR

        elif state is _State.AUTHOR:
            assert draft is not None
            if _MERGE_RE.match(line):
                continue
            match = _AUTHOR_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected Author line", line=line, line_number=line_number
                )
            draft.author = match.group("author").strip()
            state = _State.DATE

        elif state is _State.DATE:
            assert draft is not None
            match = _DATE_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected Date line", line=line, line_number=line_number
                )
            draft.timestamp = _parse_date(match.group("date"), line, line_number)
            state = _State.MESSAGE_BEGIN

        elif state is _State.MESSAGE_BEGIN:
            if line:
                raise ParseError(
                    "Expected blank line before message",
                    line=line,
                    line_number=line_number,
                )
            state = _State.MESSAGE_MIDDLE

        elif state is _State.MESSAGE_MIDDLE:
            assert draft is not None
            if not line:
                state = _State.FILESET
                continue
            match = _MESSAGE_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected indented message line",
                    line=line,
                    line_number=line_number,
                )
            draft.message_lines.append(match.group("text"))

        elif state is _State.FILESET:
            assert draft is not None
            header = _HEADER_RE.match(line)
            if header is not None:
                # Record without a file list: accept it and start the next one.
                accept()
                draft = _Draft(id=header.group("id"))
                state = _State.AUTHOR
                continue
            if not line:
                continue
            summary = _SUMMARY_RE.match(line)
            if summary is not None:
                draft.change_summary = summary.group("summary").strip()
                state = _State.END
                continue
            message = _MESSAGE_RE.match(line)
            if message is not None and not draft.changed_files:
                # Next paragraph of a multi-paragraph message.
                draft.message_lines.append("")
                draft.message_lines.append(message.group("text"))
                continue
            match = _FILE_RE.match(line)
            if match is None:
                raise ParseError(
                    "Expected changed-file line", line=line, line_number=line_number
                )
            draft.changed_files.append(
                ChangedFile(
                    file_name=_strip_path_marker(match.group("path")),
                    change_detail=match.group("detail"),
                )
            )

        elif state is _State.END:
            if line:
                raise ParseError(
                    "Expected blank line after change summary",
                    line=line,
                    line_number=line_number,
                )
            accept()
            state = _State.BEGIN

    if state in (_State.AUTHOR, _State.DATE, _State.MESSAGE_BEGIN):
        raise ParseError("Truncated commit record at end of log")
    accept()

    snapshots.reverse()
    return snapshots


def _format_date(timestamp: datetime) -> str:
    return f"{timestamp:%a %b} {timestamp.day} {timestamp:%H:%M:%S %Y %z}"


def render_commit_log(snapshots: list[Snapshot]) -> str:
    """Render snapshots in ``git log --compact-summary`` layout.

    Args:
        snapshots: Snapshots ordered oldest first.

    Returns:
        Log text, newest record first, that ``parse_commit_log`` accepts.
    """
    records: list[str] = []
    for snapshot in reversed(snapshots):
        lines = [
            f"commit {snapshot.id}",
            f"Author: {snapshot.author}",
            f"Date:   {_format_date(snapshot.timestamp)}",
            "",
        ]
        lines.extend(
            f"    {text}" if text else "" for text in snapshot.message.split("\n")
        )
        if snapshot.changed_files or snapshot.change_summary:
            lines.append("")
            lines.extend(
                f" {changed.file_name} | {changed.change_detail}"
                for changed in snapshot.changed_files
            )
            if snapshot.change_summary:
                lines.append(f" {snapshot.change_summary}")
        records.append("\n".join(lines))
    if not records:
        return ""
    return "\n\n".join(records) + "\n"


def parse_hash_list(text: str) -> list[str]:
    """Parse ``git log --format=%H`` output into ids, oldest first.

    Raises:
        ParseError: If a non-empty line is not a commit hash.
    """
    ids: list[str] = []
    for line_number, line in enumerate(text.split("\n"), start=1):
        value = line.strip()
        if not value:
            continue
        if not _HASH_RE.match(value):
            raise ParseError(
                "Expected commit hash", line=line, line_number=line_number
            )
        ids.append(value)
    ids.reverse()
    return ids


def parse_tag_record(name: str, text: str) -> Annotation | None:
    """Parse the ``object`` / blank / body layout of one tag.

    Args:
        name: Tag name the record was requested for.
        text: Output of ``git tag --list --format=%(object)%0a%0a%(contents)``.

    Returns:
        The annotation, or None for a lightweight tag (no tag object).

    Raises:
        ParseError: If the object line or separating blank line is malformed.
    """
    lines = text.split("\n")
    object_id = lines[0].strip() if lines else ""
    if not object_id:
        return None
    if not _HASH_RE.match(object_id):
        raise ParseError(
            f"Expected object id for tag {name}", line=lines[0], line_number=1
        )
    if len(lines) > 1 and lines[1].strip():
        raise ParseError(
            f"Expected blank line in tag {name}", line=lines[1], line_number=2
        )
    body: list[str] = []
    for line in lines[2:]:
        if not line.strip():
            break
        body.append(line)
    return Annotation(name=name, label="\n".join(body), snapshot_id=object_id)


def slugify(label: str) -> str:
    """Derive a tag-safe name from a section label.

    Example:
        >>> slugify("  Part 1: Setup!  ")
        'part-1-setup'
    """
    return _SLUG_RE.sub("-", label.lower()).strip("-")
