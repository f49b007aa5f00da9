"""Logging for the server.

Records go to stderr and, when a logs directory is configured, to a rotating
file. Stdout carries the JSON-RPC stream, so nothing here ever writes to it.

Records about tool calls and rejected paths carry structured fields passed
through ``extra`` (``tool``, ``path``, ``access``, ``operation``,
``category``, ``duration_ms``). The formatter appends whichever are present.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping, Optional

from xcodemcp.core.errors import XcodeServerError

LOGGER_NAME = "xcodemcp"
LOG_FILE = "xcode-mcp.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

RECORD_FIELDS = ("tool", "path", "access", "operation", "category", "duration_ms")

# Tool arguments whose value is the path a call is about, in lookup order
PATH_ARGUMENTS = ("path", "project_path", "directory_path", "directory", "source_path")

_configured = False


class FieldFormatter(logging.Formatter):
    """Standard line format followed by ``[key=value ...]`` for structured fields."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = [
            f"{name}={getattr(record, name)}"
            for name in RECORD_FIELDS
            if getattr(record, name, None) is not None
        ]
        if not fields:
            return line
        return f"{line} [{' '.join(fields)}]"


def setup_logging(
    log_level: str = "INFO",
    logs_dir: Optional[Path] = None,
    console_level: int = logging.WARNING,
) -> logging.Logger:
    """Configure the ``xcodemcp`` logger. Later calls return it unchanged.

    The console handler shows warnings and errors only, unless *log_level*
    is DEBUG, in which case it mirrors everything.
    """
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    if _configured:
        return logger

    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False
    formatter = FieldFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if level == logging.DEBUG else console_level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            logs_dir / LOG_FILE,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        rotating.setLevel(level)
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    _configured = True
    return logger


def reset_logger() -> None:
    """Detach and close every handler so setup_logging() starts fresh (tests)."""
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _configured = False


def tool_call_fields(
    tool: str,
    arguments: Mapping[str, Any],
    duration_ms: float,
    error: Optional[XcodeServerError] = None,
) -> dict[str, Any]:
    """Structured fields for a tool call record.

    The error's own path wins over the argument path: it is the normalized
    form the boundary actually judged.
    """
    fields: dict[str, Any] = {"tool": tool, "duration_ms": round(duration_ms, 1)}
    for name in PATH_ARGUMENTS:
        if arguments.get(name):
            fields["path"] = str(arguments[name])
            break
    if error is not None:
        details = error.to_dict()
        for name in ("path", "access", "operation", "category"):
            if details.get(name) is not None:
                fields[name] = details[name]
    return fields


def log_tool_call(
    tool: str,
    arguments: Mapping[str, Any],
    duration_ms: float,
    error: Optional[XcodeServerError | str] = None,
) -> None:
    """Record one tool call at INFO, or at ERROR when it failed."""
    logger = logging.getLogger(f"{LOGGER_NAME}.calls")
    if error is None:
        logger.info("%s ok", tool, extra=tool_call_fields(tool, arguments, duration_ms))
        return
    if isinstance(error, XcodeServerError):
        fields = tool_call_fields(tool, arguments, duration_ms, error)
        logger.error("%s failed: %s", tool, error.message, extra=fields)
    else:
        logger.error("%s failed: %s", tool, error, extra=tool_call_fields(tool, arguments, duration_ms))
