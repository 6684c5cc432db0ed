"""Git backing store: command client, output parsers, and diff ranges.

Usage:
    ```python
    from retrace.git import GitClient, compute_change_ranges

    client = GitClient(Path("/path/to/session"))
    snapshots = await client.log("demo")
    ranges = compute_change_ranges(await client.show_patch(snapshots[-1].id))
    ```
"""

from __future__ import annotations

from retrace.git.client import GitClient, is_recoverable_failure
from retrace.git.diff import compute_change_ranges, extract_patch
from retrace.git.models import (
    Annotation,
    ChangedFile,
    ChangeRanges,
    Position,
    Snapshot,
    TextRange,
)
from retrace.git.parsing import (
    parse_commit_log,
    parse_hash_list,
    parse_tag_record,
    render_commit_log,
    slugify,
)

__all__ = [
    "Annotation",
    "ChangeRanges",
    "ChangedFile",
    "GitClient",
    "Position",
    "Snapshot",
    "TextRange",
    "compute_change_ranges",
    "extract_patch",
    "is_recoverable_failure",
    "parse_commit_log",
    "parse_hash_list",
    "parse_tag_record",
    "render_commit_log",
    "slugify",
]
