"""Diagnostic log for a page-size check.

A check walks thousands of smaps lines and trace lines.  When it fails,
the single error message says *what* went wrong; the diagnostic log
says *how we got there* — every range that was recorded and every
comparison made before the failure.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, line).
- **Logger** — an append-only log with a recording threshold, filtering,
  and clearing.

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Threshold applied on write** — per-line DEBUG tracing is only
      kept when the caller asked for it, so a non-verbose run over a
      large smaps file does not buffer one entry per line.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries.

    Using IntEnum means levels compare with ``<`` / ``>`` naturally,
    which makes minimum-level filtering trivial.
    """

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The stage that generated the event (e.g. "smaps").
        lineno: The input line the event refers to, if any.

    """

    level: LogLevel
    message: str
    source: str
    lineno: int | None = None

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message`` or ``[LEVEL] source:N: message``."""
        where = self.source if self.lineno is None else f"{self.source}:{self.lineno}"
        return f"[{self.level.name}] {where}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    Entries below ``min_level`` are discarded as they are logged.
    """

    def __init__(self, *, min_level: LogLevel = LogLevel.INFO) -> None:
        """Create an empty logger.

        Args:
            min_level: Lowest level that is recorded.

        """
        self._min_level = min_level
        self._entries: list[LogEntry] = []

    @property
    def min_level(self) -> LogLevel:
        """Return the recording threshold."""
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def enabled_for(self, level: LogLevel) -> bool:
        """Return True if entries at *level* would be recorded."""
        return level >= self._min_level

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        lineno: int | None = None,
    ) -> None:
        """Append a new entry to the log if it meets the threshold.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Stage that generated the event.
            lineno: Input line associated with the event.

        """
        if level < self._min_level:
            return
        self._entries.append(LogEntry(level=level, message=message, source=source, lineno=lineno))

    def debug(self, message: str, *, source: str, lineno: int | None = None) -> None:
        """Log at DEBUG level."""
        self.log(LogLevel.DEBUG, message, source=source, lineno=lineno)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result if result is not self._entries else list(result)

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()
