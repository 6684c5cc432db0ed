"""Click commands registered on the ``retrace`` group."""

from __future__ import annotations

from retrace.cli.commands.history import log, ranges
from retrace.cli.commands.navigate import next_, previous, replay, restore
from retrace.cli.commands.session import save, start, status, stop
from retrace.cli.commands.timeline import branch, branches, revert, section, switch

__all__ = [
    "branch",
    "branches",
    "log",
    "next_",
    "previous",
    "ranges",
    "replay",
    "restore",
    "revert",
    "save",
    "section",
    "start",
    "status",
    "stop",
    "switch",
]
