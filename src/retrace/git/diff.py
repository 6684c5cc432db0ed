"""Derive before/after text ranges of a snapshot's change from its diff.

Only the last hunk of the diff is considered: replay steps record one small
edit at a time, so the last hunk is where the cursor was.

Insertions produce a span over the new text. A pure deletion has nothing
left to highlight on the new side, so ``after`` collapses to a caret where
the removed lines used to start. ``before`` follows the same rule on the
old side.
"""

from __future__ import annotations

from unidiff import PatchSet
from unidiff.constants import LINE_TYPE_ADDED, LINE_TYPE_CONTEXT, LINE_TYPE_REMOVED
from unidiff.errors import UnidiffParseError
from unidiff.patch import Line

from retrace.exceptions import ParseError
from retrace.git.models import ChangeRanges, Position, TextRange
from retrace.logging import get_logger

__all__ = ["compute_change_ranges", "extract_patch"]

logger = get_logger(__name__)

_DIFF_LINE_TYPES = (LINE_TYPE_ADDED, LINE_TYPE_REMOVED, LINE_TYPE_CONTEXT)


def extract_patch(show_output: str) -> str:
    """Return the part of ``git show`` output after the first ``index`` line.

    Commit metadata and the ``diff --git`` header are dropped so that only
    the ``---``/``+++`` headers and hunks remain. Output with no ``index``
    line (empty commit, mode-only change) yields an empty string.
    """
    lines = show_output.split("\n")
    for position, line in enumerate(lines):
        if line.startswith("index "):
            return "\n".join(lines[position + 1 :])
    return ""


def _side_range(
    lines: list[Line],
    changed_type: str,
    other_type: str,
    line_number_attr: str,
) -> TextRange:
    """Range of ``changed_type`` lines on their side of the hunk.

    Args:
        lines: Hunk lines with markers removed.
        changed_type: Line type that belongs only to this side.
        other_type: Line type that belongs only to the opposite side.
        line_number_attr: ``target_line_no`` or ``source_line_no``.
    """
    changed = [line for line in lines if line.line_type == changed_type]
    if changed:
        first, last = changed[0], changed[-1]
        last_text = last.value.rstrip("\r\n")
        return TextRange(
            Position(getattr(first, line_number_attr), 1),
            Position(getattr(last, line_number_attr), len(last_text) + 1),
        )

    # No lines on this side changed: caret where the opposite change begins.
    first_other = next(
        (index for index, line in enumerate(lines) if line.line_type == other_type),
        None,
    )
    if not first_other:
        return TextRange.point(1, 1)
    preceding = next(
        line
        for line in reversed(lines[:first_other])
        if line.line_type != other_type
    )
    return TextRange.point(getattr(preceding, line_number_attr) + 1, 1)


def compute_change_ranges(diff_text: str) -> ChangeRanges | None:
    """Compute the ranges of the last change in a single-file diff.

    Args:
        diff_text: Unified diff starting at the ``---``/``+++`` headers
            (see :func:`extract_patch`).

    Returns:
        ChangeRanges, or None if the diff has no hunks.

    Raises:
        ParseError: If the diff cannot be parsed.
    """
    # Binary and mode-only changes have no hunks; merges use "@@@" headers.
    if not any(line.startswith("@@ ") for line in diff_text.split("\n")):
        return None
    try:
        patch = PatchSet.from_string(diff_text)
    except UnidiffParseError as e:
        raise ParseError(f"Malformed unified diff: {e}") from e

    hunks = [hunk for patched_file in patch for hunk in patched_file]
    if not hunks:
        logger.debug("diff_without_hunks")
        return None

    # "\ No newline at end of file" markers are neither side.
    lines = [line for line in hunks[-1] if line.line_type in _DIFF_LINE_TYPES]

    return ChangeRanges(
        before=_side_range(
            lines, LINE_TYPE_REMOVED, LINE_TYPE_ADDED, "source_line_no"
        ),
        after=_side_range(
            lines, LINE_TYPE_ADDED, LINE_TYPE_REMOVED, "target_line_no"
        ),
    )
