"""Logging helpers shared by the gateway and the CLI.

Keeps handler setup in one place so every entry point logs the same way,
and provides small utilities for structured ``extra=`` payloads and timing.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from yarl import URL

from constants import Constants

_CONFIGURED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once.

    Args:
        level: Level name override. Falls back to the GEMGATE_LOG_LEVEL
            environment variable, then INFO.
    """
    global _CONFIGURED  # pylint: disable=global-statement
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not _CONFIGURED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
        _CONFIGURED = True
    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True if DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping, dropping fields whose value is None."""
    return {key: value for key, value in fields.items() if value is not None}


def safe_url(url: Any) -> str:
    """Render a URL for logs without credentials or query string."""
    try:
        parsed = URL(str(url))
    except (TypeError, ValueError):
        return str(url)
    if not parsed.is_absolute():
        return str(parsed.with_query(None))
    return str(parsed.with_user(None).with_query(None))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now if still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
