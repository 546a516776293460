"""Centralized logging configuration and structured-context helpers.

All modules log through ``logging.getLogger(__name__)``; this module owns the
handler setup so the CLI can reconfigure levels and destinations in one
place. Debug records may carry structured fields via ``extra_context``.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from yup.constants import Constants

_HANDLER_NAME = "yup-console"
_FILE_HANDLER_NAME = "yup-file"


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get(Constants.ENV_LOG_LEVEL, "")
    if not name:
        return default
    value = getattr(logging, name.strip().upper(), None)
    return value if isinstance(value, int) else default


def configure_logging(level: Optional[int] = None, quiet: bool = False) -> None:
    """Install the console handler on the root logger.

    Safe to call more than once; an existing yup handler is replaced rather
    than duplicated.

    Args:
        level: Explicit level; falls back to YUP_LOG_LEVEL, then INFO.
        quiet: Only show errors on the console.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    if quiet:
        handler.setLevel(logging.ERROR)
    root.addHandler(handler)
    root.setLevel(level if level is not None else _level_from_env())


def add_file_handler(path: str) -> None:
    """Mirror log output to ``path`` with timestamps."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _FILE_HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.set_name(_FILE_HANDLER_NAME)
    file_handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
    root.addHandler(file_handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when ``logger`` would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping for structured log records.

    None values are dropped so formatters do not render empty fields.
    """
    return {k: v for k, v in fields.items() if v is not None}


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.monotonic()
        self._end = None
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.monotonic()

    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.monotonic()
        return int((end - self._start) * 1000)
