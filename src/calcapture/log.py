"""Structured logging setup for calcapture.

Provides a consistent console log format with ISO 8601 timestamps and
pipe-separated fields, plus :class:`DiagnosticLogHandler`, a bounded
newest-first buffer of short log lines that the settings store persists so a
user can review or copy recent activity.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Sentinel to detect handlers added by setup_logging so repeated calls
# are idempotent without interfering with handlers added externally.
_HANDLER_ATTR = "_calcapture_log_handler"

DIAGNOSTIC_LOG_LIMIT = 100


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a structured formatter.

    Sets the root logger level and attaches a :class:`logging.StreamHandler`
    that writes to *stderr* using the project log format.

    Calling this function multiple times is safe -- it will not add
    duplicate handlers.

    Args:
        level: A standard logging level name (e.g. ``"DEBUG"``,
            ``"INFO"``, ``"WARNING"``).

    Raises:
        ValueError: If *level* is not a recognised logging level string.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers:
        if getattr(handler, _HANDLER_ATTR, False):
            handler.setLevel(numeric_level)
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    handler.setFormatter(formatter)

    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


class DiagnosticLogHandler(logging.Handler):
    """Keep the most recent log lines, newest first.

    Each record becomes ``[HH:MM:SS] [LEVEL] message``.  Once *limit*
    lines are held, the oldest line is dropped for every new one.

    Args:
        entries: Previously persisted lines (newest first) to continue from.
        limit: Maximum number of lines kept.
        level: Minimum record level captured.
    """

    def __init__(
        self,
        entries: Iterable[str] = (),
        limit: int = DIAGNOSTIC_LOG_LIMIT,
        level: int = logging.INFO,
    ) -> None:
        super().__init__(level)
        self._limit = limit
        self._entries: list[str] = list(entries)[:limit]
        self.setFormatter(
            logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
        )

    @property
    def entries(self) -> list[str]:
        """A copy of the buffered lines, newest first."""
        return list(self._entries)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return
        self._entries.insert(0, line)
        del self._entries[self._limit:]

    def clear(self) -> None:
        """Drop every buffered line."""
        self._entries.clear()
