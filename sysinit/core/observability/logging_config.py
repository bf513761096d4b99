"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  SYSINIT_LOG_LEVEL env var  >  INFO (default)

Console output goes to stdout and is mirrored to a log file, either
given up front (--log-file / SYSINIT_LOG_FILE) or attached later with
``add_file_handler`` once the run's config is known.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# ── Format strings ──────────────────────────────────────────────

# INFO/WARNING level — timestamp, severity, message
_FMT_CONSOLE = "%(asctime)s %(levelname)-5s %(message)s"
_DATEFMT_CONSOLE = "%Y-%m-%d %H:%M:%S"

# ERROR level (--quiet) — minimal, no noise
_FMT_MINIMAL = "%(levelname)s %(message)s"

# DEBUG level — full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "asyncio")


class _SeverityFormatter(logging.Formatter):
    """Formatter that prints WARNING as WARN."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.WARNING:
            record.levelname = "WARN"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: If True, keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
        stream: Console stream (default: stdout).
    """
    numeric_level = _parse_level(level)

    # ── Console handler (stdout) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.WARNING:
        fmt, datefmt = _FMT_CONSOLE, _DATEFMT_CONSOLE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(stream or sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(_SeverityFormatter(fmt, datefmt=datefmt))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(numeric_level)

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        add_file_handler(log_file, log_file_level or level)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def add_file_handler(log_file: str, level: str | None = None) -> logging.Handler:
    """Mirror log output to a file (appending).

    The root level is lowered if the file wants more detail than
    the console.

    Returns:
        The attached handler.
    """
    file_level = _parse_level(level) if level else logging.INFO
    root = logging.getLogger()

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(_SeverityFormatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
    root.addHandler(fh)

    if root.level == logging.NOTSET or file_level < root.level:
        root.setLevel(file_level)
    return fh


def has_file_handler() -> bool:
    """Whether a file handler is already attached to the root logger."""
    return any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.INFO
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
