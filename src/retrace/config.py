from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from retrace.exceptions import ConfigError
from retrace.logging import get_logger

__all__ = [
    "RetraceConfig",
    "GitConfig",
    "SessionConfig",
    "ReplayConfig",
    "load_config",
    "get_user_config_path",
    "get_project_config_path",
]

logger = get_logger(__name__)

PROJECT_CONFIG_NAME = "retrace.yaml"

_project_config_override: ContextVar[Path | None] = ContextVar(
    "retrace_project_config", default=None
)


class GitConfig(BaseModel):
    """Settings for the git backing store.

    Attributes:
        executable: git binary name or path.
        commit_message: Message recorded on every snapshot.
    """

    executable: str = "git"
    commit_message: str = "Update by retrace."

    @field_validator("commit_message")
    @classmethod
    def check_commit_message(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("commit_message must not be blank")
        return v


class SessionConfig(BaseModel):
    """Settings for recording sessions.

    Attributes:
        checkout_existing: Check out an existing timeline on start instead of
            keeping the current checkout.
        terminal_file: Tracked file holding captured terminal output.
        state_file: Where per-workspace UI state is remembered.
    """

    checkout_existing: bool = True
    terminal_file: str = "terminal-data.txt"
    state_file: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "retrace" / "workspaces.yaml"
    )


class ReplayConfig(BaseModel):
    """Settings for automatic replay."""

    step_delay: float = Field(default=1.0, ge=0.0, le=60.0)


class YamlConfigSource(PydanticBaseSettingsSource):
    """Settings source that loads from a YAML file."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._config_data: dict[str, Any] = {}
        if yaml_file and yaml_file.exists():
            try:
                with open(yaml_file) as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(
                    message=f"Invalid YAML in {yaml_file}: {e}",
                    field=None,
                    value=None,
                ) from e
            if loaded is None:
                logger.warning("config_file_empty", path=str(yaml_file))
            elif not isinstance(loaded, dict):
                raise ConfigError(
                    message=f"Config file {yaml_file} must contain a mapping",
                    field=None,
                    value=loaded,
                )
            else:
                self._config_data = loaded

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        if field_name in self._config_data:
            return self._config_data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._config_data


class RetraceConfig(BaseSettings):
    """Root configuration object containing all retrace settings."""

    model_config = SettingsConfigDict(
        env_prefix="RETRACE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    git: GitConfig = Field(default_factory=GitConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)
    verbosity: Literal["error", "warning", "info", "debug"] = "warning"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order settings sources, highest priority first.

        1. Init arguments
        2. Environment variables (RETRACE_*)
        3. Project YAML config (./retrace.yaml or the --config file)
        4. User YAML config (~/.config/retrace/config.yaml)
        """
        return (
            init_settings,
            env_settings,
            YamlConfigSource(settings_cls, get_project_config_path()),
            YamlConfigSource(settings_cls, get_user_config_path()),
        )


def get_user_config_path() -> Path:
    """Path to ~/.config/retrace/config.yaml."""
    return Path.home() / ".config" / "retrace" / "config.yaml"


def get_project_config_path() -> Path:
    """Project config in effect: an explicit override or ./retrace.yaml."""
    return _project_config_override.get() or Path.cwd() / PROJECT_CONFIG_NAME


def load_config(config_path: Path | None = None) -> RetraceConfig:
    """Load configuration with hierarchy: defaults -> user -> project -> env.

    Args:
        config_path: Project config file to use instead of ./retrace.yaml.

    Returns:
        RetraceConfig instance with merged configuration.

    Raises:
        ConfigError: If a config file is unreadable or a value is invalid.
    """
    if config_path is not None and not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}", field=None, value=None
        )

    token = _project_config_override.set(config_path)
    try:
        if not get_project_config_path().exists():
            logger.info("project_config_missing", using="defaults")
        return RetraceConfig()
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid configuration: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
    finally:
        _project_config_override.reset(token)
