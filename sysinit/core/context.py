"""
Run context — everything a provisioning run needs, in one place.

Created once at process start by the provision use case and passed to
every component. The detected package manager, the non-interactive
flag, the elevation state and the step list never change during a run;
only the ``log`` sink is appended to.
"""

from __future__ import annotations

import ctypes
import os
from dataclasses import dataclass, field

from sysinit.adapters.shell.command import CommandRunner
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.step import InstallStep
from sysinit.core.observability.run_log import RunLog


@dataclass(frozen=True)
class Elevation:
    """Whether privileged installs are possible, and how.

    Attributes:
        is_admin: Process already runs as root / Administrator.
        sudo: Path to ``sudo`` when available.
        invoking_user: The user behind ``sudo`` (``SUDO_USER``), for
            work that must not run as root.
    """

    is_admin: bool = False
    sudo: str | None = None
    invoking_user: str | None = None

    @property
    def can_elevate(self) -> bool:
        return self.is_admin or self.sudo is not None

    def prefix(self, non_interactive: bool = False) -> list[str] | None:
        """argv prefix for a privileged command.

        Returns:
            ``[]`` when already elevated, a sudo prefix when sudo is
            available (``sudo -n`` never prompts), or None when the
            command cannot be elevated at all.
        """
        if self.is_admin:
            return []
        if self.sudo:
            return ["sudo", "-n"] if non_interactive else ["sudo"]
        return None


def detect_elevation(runner: CommandRunner) -> Elevation:
    """Probe the current process for root/admin rights and sudo."""
    if hasattr(os, "geteuid"):
        is_admin = os.geteuid() == 0
    else:
        try:
            is_admin = bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            is_admin = False
    return Elevation(
        is_admin=is_admin,
        sudo=runner.which("sudo"),
        invoking_user=os.environ.get("SUDO_USER"),
    )


@dataclass(frozen=True)
class RunContext:
    """Read-only state of one provisioning run (the log is the exception)."""

    kind: PackageManagerKind
    non_interactive: bool = False
    elevation: Elevation = field(default_factory=Elevation)
    steps: tuple[InstallStep, ...] = ()
    log: RunLog = field(default_factory=RunLog)
    system: str = ""

    @property
    def supported(self) -> bool:
        return self.kind != PackageManagerKind.NONE
