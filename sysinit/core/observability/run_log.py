"""
Run log — the append-only record of one provisioning run.

The core never formats or writes log lines itself. It calls
``RunLog.record(level, message)``; the entry is kept in memory (for the
JSON report and for tests) and forwarded to the ``sysinit.run`` logger,
whose handlers are configured by ``logging_config.setup_logging``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

LogLevel = Literal["INFO", "WARN", "ERROR"]

_LEVELS: dict[str, int] = {
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class LogEntry(BaseModel):
    """A single recorded line."""

    timestamp: str = Field(default_factory=_now_iso)
    level: LogLevel
    message: str


class RunLog:
    """Mutable log sink shared by every component of a run."""

    def __init__(self, logger_name: str = "sysinit.run"):
        self._entries: list[LogEntry] = []
        self._logger = logging.getLogger(logger_name)

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def record(self, level: LogLevel, message: str) -> None:
        """Append an entry and forward it to the logging system."""
        if level not in _LEVELS:
            raise ValueError(f"Unknown log level: {level!r}")
        self._entries.append(LogEntry(level=level, message=message))
        self._logger.log(_LEVELS[level], message)

    def info(self, message: str) -> None:
        self.record("INFO", message)

    def warn(self, message: str) -> None:
        self.record("WARN", message)

    def error(self, message: str) -> None:
        self.record("ERROR", message)

    def messages(self, level: LogLevel | None = None) -> list[str]:
        """Recorded messages, optionally filtered by level."""
        return [e.message for e in self._entries if level is None or e.level == level]

    def __len__(self) -> int:
        return len(self._entries)
