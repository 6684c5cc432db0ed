"""retrace - record an editing session as git snapshots and replay it."""

from __future__ import annotations

__version__ = "0.1.0"
