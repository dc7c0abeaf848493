"""
narration-ms Structured Logging.

A thin layer over the standard ``logging`` module with:
    - Numeric log levels (1-4) for simplified configuration
    - Colored console output for humans
    - Optional rotating JSONL file output for machines
    - Request id and subject correlation via contextvars

Usage:
    from narration_ms.core.logging import get_logger, info, warn, error

    log = get_logger("narration-ms.mymodule")

    info(log, "cache_hit", key=key)
    warn(log, "cache_entry_malformed", key=key)
    error(log, "provider_failed", status=502)

    verbose(log, "stage", event="provider", seconds=1.42)
    debug(log, "transaction", count=3, reset_at=1700000000000)

Configuration:
    export NARRATION_MS_LOG_LEVEL=3   # VERBOSE
    export NARRATION_MS_LOG_DIR=logs  # enable JSONL file output
    export NARRATION_MS_NO_COLOR=1
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .levels import LEVEL_MAP, LEVEL_NAMES, LogLevel, coerce_level
from .context import (
    get_level,
    get_level_name,
    get_log_config,
    get_request_id,
    get_subject,
    is_configured,
    read_logging_config,
    request_context,
    set_configured,
    set_level,
    set_log_config,
    set_request_id,
    set_subject,
)
from .formatters import ColoredConsoleFormatter, JsonlFormatter


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Configure the logging system.

    Args:
        level: Log level (1-4, level name, or LogLevel enum)
        force: Force reconfiguration even if already configured
    """
    if is_configured() and not force:
        return

    log_config = read_logging_config()
    set_log_config(log_config)

    current_level = coerce_level(level or log_config.get("level", LogLevel.NORMAL))
    set_level(current_level)

    python_level = LEVEL_MAP.get(current_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG - 10)  # Allow all, filter in handlers
    root.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(python_level)
    console.setFormatter(ColoredConsoleFormatter())
    root.addHandler(console)

    log_dir = log_config.get("log_dir")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        jsonl_path = Path(log_dir) / str(log_config.get("jsonl_file", "narration-ms.jsonl"))
        file_handler = RotatingFileHandler(
            jsonl_path,
            maxBytes=int(log_config.get("rotate_max_bytes", 10 * 1024 * 1024)),
            backupCount=int(log_config.get("rotate_backup_count", 5)),
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(logging.DEBUG - 10)
        file_handler.setFormatter(JsonlFormatter())
        root.addHandler(file_handler)

    set_configured(True)


def get_logger(name: str = "narration-ms") -> logging.Logger:
    """Get a logger instance, configuring logging if needed."""
    configure_logging()
    return logging.getLogger(name)


# helper -> (python level, console tag, numeric level needed to emit)
_KINDS: Dict[str, Tuple[int, str, LogLevel]] = {
    "error": (logging.ERROR, "ERROR", LogLevel.MINIMAL),
    "fail": (logging.ERROR, "FAIL", LogLevel.MINIMAL),
    "warn": (logging.WARNING, "WARN", LogLevel.NORMAL),
    "info": (logging.INFO, "INFO", LogLevel.NORMAL),
    "success": (logging.INFO, "SUCCESS", LogLevel.NORMAL),
    "verbose": (logging.DEBUG, "INFO", LogLevel.VERBOSE),
    "debug": (logging.DEBUG, "DEBUG", LogLevel.DEBUG),
}


def _emit(logger: logging.Logger, kind: str, msg: str, fields: Dict[str, Any], exc_info: bool = False) -> None:
    py_level, tag, needed = _KINDS[kind]
    if needed > get_level():
        return

    # event/seconds get dedicated columns; everything else is free-form
    event = fields.pop("event", None)
    seconds = fields.pop("seconds", None)
    logger.log(
        py_level,
        msg,
        exc_info=exc_info,
        extra={
            "tag": tag,
            "numeric_level": int(needed),
            "request_id": get_request_id(),
            "subject": get_subject(),
            "event": event,
            "seconds": seconds,
            "extra_data": fields or None,
        },
    )


def error(logger: logging.Logger, msg: str, exc_info: bool = False, **fields: Any) -> None:
    """Failures the operator must see. Shown at every level."""
    _emit(logger, "error", msg, fields, exc_info=exc_info)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """A request finished with a classified error."""
    _emit(logger, "fail", msg, fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "warn", msg, fields)


def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "info", msg, fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """A request finished with audio."""
    _emit(logger, "success", msg, fields)


def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "verbose", msg, fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _emit(logger, "debug", msg, fields)


def stage(logger: logging.Logger, name: str, seconds: float, **fields: Any) -> None:
    """
    Per-stage timing line for the narration pipeline (VERBOSE).

    Example:
        stage(log, "cache_lookup", 0.0042, cache="hit")
        # 14:30:05 [ INFO  ] (abc123 uid-42) stage event=cache_lookup 0.004s cache=hit
    """
    _emit(logger, "verbose", "stage", dict(fields, event=name, seconds=round(seconds, 4)))


__all__ = [
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "get_request_id",
    "set_request_id",
    "get_subject",
    "set_subject",
    "request_context",
    "get_level",
    "get_level_name",
    "get_log_config",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "error",
    "fail",
    "warn",
    "info",
    "success",
    "verbose",
    "debug",
    "stage",
]
