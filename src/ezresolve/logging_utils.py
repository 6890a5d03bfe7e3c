"""Logging helpers for the command line and library callers."""

from __future__ import annotations

import logging
import os
import sys
import threading

ENV_LOG_LEVEL = "EZRESOLVE_LOG_LEVEL"

_HANDLER_NAME = "ezresolve-stderr"
_LOG_ONCE_KEYS: set[str] = set()
_LOG_ONCE_LOCK = threading.Lock()


def _parse_log_level(level: str | int) -> int:
    if isinstance(level, int):
        return int(level)
    value = str(level).strip().upper()
    if not value:
        return logging.WARNING
    if value.isdigit():
        return int(value)
    resolved = getattr(logging, value, None)
    if not isinstance(resolved, int):
        return logging.WARNING
    return resolved


def setup_logging(log_level: str | int | None = None) -> logging.Logger:
    """
    Attach a stderr handler to the ``ezresolve`` logger.

    Idempotent: calling it again only updates the level. ``EZRESOLVE_LOG_LEVEL``
    wins over the argument so a user can raise verbosity without code changes.
    """
    logger = logging.getLogger("ezresolve")
    level = _parse_log_level(os.environ.get(ENV_LOG_LEVEL) or log_level or "WARNING")
    logger.setLevel(level)

    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s [%(name)s] %(message)s"))
    logger.addHandler(handler)
    return logger


def log_once(
    logger: logging.Logger,
    key: str,
    level: int,
    msg: str,
    *args,
    exc_info: bool | BaseException | None = None,
) -> bool:
    """Logs at most once per process for the given key."""
    k = str(key)
    with _LOG_ONCE_LOCK:
        if k in _LOG_ONCE_KEYS:
            return False
        _LOG_ONCE_KEYS.add(k)

    logger.log(level, msg, *args, exc_info=exc_info)
    return True


def reset_log_once() -> None:
    with _LOG_ONCE_LOCK:
        _LOG_ONCE_KEYS.clear()
