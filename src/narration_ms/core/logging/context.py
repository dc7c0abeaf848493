"""
Request Context and Configuration State for Logging.

Two context variables travel with every request:
    - request_id: short id minted by the route handler
    - subject: verified caller uid, set once AuthGate succeeds

Both default to "-" so log lines emitted outside a request stay aligned.
Module-level state holds the resolved logging configuration.

Environment Variables:
    - NARRATION_MS_LOG_LEVEL: Override log level (1-4 or name)
    - NARRATION_MS_LOG_DIR: Directory for the JSONL log file
    - NARRATION_MS_JSONL_FILE: JSONL filename
    - NARRATION_MS_LOG_ROTATE_BYTES: Max file size before rotation
    - NARRATION_MS_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")
_subject: ContextVar[str] = ContextVar("subject", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context for log correlation."""
    _request_id.set(rid)


def get_subject() -> str:
    return _subject.get()


def set_subject(uid: str) -> None:
    """Bind the verified caller uid to the current context."""
    _subject.set(uid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from the settings file and environment.

    Priority (highest first): NARRATION_MS_* environment variables, the
    ``logging`` section of the settings file, defaults.
    """
    cfg: Dict[str, Any] = {}

    from narration_ms.core.config import ConfigValidationError, default_settings_path, load_settings

    try:
        settings = load_settings(default_settings_path())
        cfg.update(settings.raw.get("logging", {}) or {})
    except (FileNotFoundError, ConfigValidationError):
        # No usable settings file, logging falls back to defaults
        pass

    if os.getenv("NARRATION_MS_LOG_LEVEL"):
        cfg["level"] = os.environ["NARRATION_MS_LOG_LEVEL"]
    if os.getenv("NARRATION_MS_LOG_DIR"):
        cfg["log_dir"] = os.environ["NARRATION_MS_LOG_DIR"]
    if os.getenv("NARRATION_MS_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["NARRATION_MS_JSONL_FILE"]
    for env_name, key in (
        ("NARRATION_MS_LOG_ROTATE_BYTES", "rotate_max_bytes"),
        ("NARRATION_MS_LOG_ROTATE_BACKUP", "rotate_backup_count"),
    ):
        value = os.getenv(env_name)
        if value and value.isdigit():
            cfg[key] = int(value)

    return cfg


@contextmanager
def request_context(request_id: Optional[str] = None, subject: Optional[str] = None) -> Iterator[None]:
    """
    Bind request id and/or subject for the duration of a block.

    Values are restored on exit, so a subject verified for one request is
    never attributed to log lines that follow it on the same thread.
    """
    tokens = []
    if request_id is not None:
        tokens.append((_request_id, _request_id.set(request_id)))
    if subject is not None:
        tokens.append((_subject, _subject.set(subject)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
