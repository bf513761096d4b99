"""
Adapter results and exit codes — the failure contract.

Adapters never raise for expected failures. Every operation returns an
``AdapterResult``: either a success carrying a value (the canonical
candidate that installed, for example) or an ``AdapterError`` that says
what went wrong, which candidates were tried, and the last underlying
error. Only the sequencer decides how severe a failure is.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ExitCode(IntEnum):
    """Process exit codes."""

    OK = 0
    ERROR = 1
    USAGE = 2
    UNSUPPORTED_ENVIRONMENT = 10
    PYTHON = 20
    PIP = 21
    GIT = 30
    PASSWORD_MANAGER = 40


class ErrorKind(StrEnum):
    """Failure classes reported by adapters and the sequencer."""

    UNSUPPORTED_ENVIRONMENT = "unsupported_environment"
    INDEX_REFRESH_FAILED = "index_refresh_failed"
    NO_CANDIDATE_AVAILABLE = "no_candidate_available"
    VERIFICATION_MISMATCH = "verification_mismatch"
    PRIVILEGE_REQUIRED = "privilege_required"
    COMMAND_FAILED = "command_failed"


class AdapterError(BaseModel):
    """What went wrong inside an adapter call."""

    kind: ErrorKind
    message: str
    candidates: list[str] = Field(default_factory=list)
    last_error: str = ""

    def describe(self) -> str:
        """One-line summary suitable for an ERROR log line."""
        text = self.message
        if self.candidates:
            text += f" (tried: {', '.join(self.candidates)})"
        if self.last_error:
            text += f"; last error: {self.last_error}"
        return text


class AdapterResult(BaseModel):
    """Result of an adapter operation, success or failure."""

    adapter: str
    ok: bool = True
    value: str = ""
    attempted: list[str] = Field(default_factory=list)
    error: AdapterError | None = None

    @classmethod
    def success(
        cls,
        adapter: str,
        value: str = "",
        **kwargs: Any,
    ) -> AdapterResult:
        """Create a success result."""
        return cls(adapter=adapter, ok=True, value=value, **kwargs)

    @classmethod
    def failure(
        cls,
        adapter: str,
        kind: ErrorKind,
        message: str,
        candidates: list[str] | None = None,
        last_error: str = "",
    ) -> AdapterResult:
        """Create a failure result."""
        tried = list(candidates or [])
        return cls(
            adapter=adapter,
            ok=False,
            attempted=tried,
            error=AdapterError(
                kind=kind,
                message=message,
                candidates=tried,
                last_error=last_error,
            ),
        )

    @property
    def reason(self) -> str:
        """Failure description, empty on success."""
        return self.error.describe() if self.error else ""
