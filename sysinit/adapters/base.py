"""
Adapter base — the contract between the sequencer and package managers.

The sequencer only talks to package managers through this interface,
never directly to apt, brew or winget.

Adapters NEVER raise for expected failures: every operation returns an
``AdapterResult`` and the sequencer decides what a failure means.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sysinit.adapters.shell.command import CommandResult
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.result import AdapterResult
from sysinit.core.models.step import RepositorySetup, SourceBuild

if TYPE_CHECKING:
    from sysinit.core.context import RunContext


class PackageManagerAdapter(ABC):
    """Abstract base class for package manager adapters.

    To support a new manager, prefer declaring a ``ManagerSpec`` for the
    generic ``ManagerAdapter``. Subclass this only when a manager cannot
    be described as argv templates.
    """

    @property
    @abstractmethod
    def kind(self) -> PackageManagerKind:
        """Which manager this adapter drives."""

    @property
    def name(self) -> str:
        return str(self.kind)

    @property
    def needs_elevation(self) -> bool:
        """Whether system-wide changes on this manager go through root."""
        return False

    @abstractmethod
    def refresh(self, ctx: RunContext) -> AdapterResult:
        """Re-sync the package index. Best-effort for the caller."""

    @abstractmethod
    def install(self, ctx: RunContext, candidates: Sequence[str]) -> AdapterResult:
        """Try candidates in order; the first success wins.

        Returns:
            Success with ``value`` set to the candidate that installed,
            or ``NO_CANDIDATE_AVAILABLE`` after every candidate failed.
        """

    @abstractmethod
    def is_installed(self, executable: str) -> bool:
        """PATH lookup. Never invokes the package manager."""

    @abstractmethod
    def path_exists(self, path: str) -> bool:
        """Whether a file or app bundle exists (environment variables expanded)."""

    @abstractmethod
    def upgrade(self, ctx: RunContext) -> AdapterResult:
        """Upgrade all installed packages."""

    @abstractmethod
    def add_repository(self, ctx: RunContext, setup: RepositorySetup) -> AdapterResult:
        """Register a third-party repository (idempotent via its marker)."""

    @abstractmethod
    def build_from_source(self, ctx: RunContext, build: SourceBuild) -> AdapterResult:
        """Build and install a package from source, never as root."""

    @abstractmethod
    def run_command(
        self,
        ctx: RunContext,
        argv: Sequence[str],
        elevate: bool = False,
    ) -> CommandResult:
        """Run a non-manager command (probe, bootstrap, hook)."""

    @abstractmethod
    def version_of(self, executable: str) -> str:
        """Dotted version an executable reports for ``--version``, or ``""``."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.name!r}>"
