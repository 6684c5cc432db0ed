"""Structured logging configuration for retrace.

This module provides structlog-based logging with:
- JSON output for machine consumption (when env var RETRACE_LOG_FORMAT=json)
- Pretty console output for interactive use (default)
- Session context (working_dir, branch) bound through contextvars

structlog events and records from plain ``logging`` loggers (GitPython,
asyncio) go through the same stdlib handler, so both are rendered once and
in the same format.

Usage:
    from retrace.logging import bind_session, configure_logging, get_logger

    configure_logging()
    bind_session(Path("/tmp/project"), "demo")

    log = get_logger(__name__)
    log.info("snapshot_saved", snapshot_id="3f2a1c0")
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

__all__ = [
    "get_logger",
    "configure_logging",
    "bind_context",
    "bind_session",
    "clear_context",
]

LOG_FORMAT_ENV_VAR = "RETRACE_LOG_FORMAT"

LOG_LEVEL_ENV_VAR = "RETRACE_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


def _get_log_level() -> int:
    """Get the log level from environment or default."""
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.WARNING)


def _is_json_output() -> bool:
    return os.environ.get(LOG_FORMAT_ENV_VAR, "").lower() == "json"


def _get_shared_processors() -> list[Processor]:
    """Processors applied to structlog events and foreign records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _get_render_processors(use_json: bool) -> list[Processor]:
    """Final processors run by the stdlib formatter."""
    if use_json:
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def configure_logging(
    *,
    force_json: bool = False,
    level: int | None = None,
) -> None:
    """Configure structlog for the application.

    Call once at startup; later calls reconfigure logging. Log output always
    goes to stderr so it never mixes with command output on stdout.

    Args:
        force_json: Force JSON output regardless of environment variable.
        level: Override log level. If None, reads RETRACE_LOG_LEVEL.
    """
    use_json = force_json or _is_json_output()
    log_level = level if level is not None else _get_log_level()

    structlog.configure(
        processors=[
            *_get_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_get_render_processors(use_json),
            ],
            foreign_pre_chain=_get_shared_processors(),
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the caller's module name.

    Example:
        log = get_logger(__name__)
        log.info("session_started", branch="demo")
    """
    log: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return log


def bind_context(**context: Any) -> None:
    """Bind context variables included in all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**context)


def bind_session(working_dir: Path | str, branch: str) -> None:
    """Tag every subsequent log line with the session being recorded.

    Called when a session opens and whenever its active timeline changes,
    so events logged by the git client and runner carry both keys.
    """
    bind_context(working_dir=str(working_dir), branch=branch)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
