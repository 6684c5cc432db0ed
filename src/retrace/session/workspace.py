"""Per-workspace UI state persisted between runs.

The state file is a YAML mapping keyed by session root::

    /home/me/demo:
      active_branch: demo
      show_sections: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from retrace.exceptions import ConfigError
from retrace.logging import get_logger
from retrace.utils.atomic import atomic_write_text

__all__ = ["WorkspaceState", "WorkspaceStateStore"]

logger = get_logger(__name__)


class WorkspaceState(BaseModel):
    """Remembered state of one session root.

    Attributes:
        active_branch: Timeline the session was recording on, if active.
        show_sections: Whether the log view lists only section starts.
    """

    active_branch: str | None = None
    show_sections: bool = False


class WorkspaceStateStore:
    """YAML-backed store of :class:`WorkspaceState` keyed by session root.

    Args:
        path: State file location. Created on first write.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML in {self._path}: {e}", field=None, value=None
            ) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Workspace state in {self._path} must be a mapping",
                field=None,
                value=data,
            )
        return data

    def _save(self, data: dict[str, Any]) -> None:
        atomic_write_text(self._path, yaml.safe_dump(data, sort_keys=True))

    def get(self, working_dir: Path) -> WorkspaceState:
        """State for a session root; defaults when nothing is stored."""
        key = str(working_dir)
        raw = self._load().get(key) or {}
        try:
            return WorkspaceState.model_validate(raw)
        except ValidationError as e:
            first_error = e.errors()[0]
            raise ConfigError(
                f"Invalid workspace state for {key}: {first_error['msg']}",
                field=".".join(str(loc) for loc in first_error["loc"]),
                value=first_error.get("input"),
            ) from e

    def update(self, working_dir: Path, **changes: Any) -> WorkspaceState:
        """Merge ``changes`` into the stored state and write it back."""
        data = self._load()
        state = self.get(working_dir).model_copy(update=changes)
        data[str(working_dir)] = state.model_dump()
        self._save(data)
        logger.debug("workspace_state_saved", working_dir=str(working_dir))
        return state

    def clear(self, working_dir: Path) -> None:
        """Forget a session root."""
        data = self._load()
        if data.pop(str(working_dir), None) is not None:
            self._save(data)
