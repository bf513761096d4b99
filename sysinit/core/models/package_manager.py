"""
Package manager model — the kinds we know and how to drive each one.

A ``ManagerSpec`` is pure data: the argv templates for refresh, install
and upgrade, plus the flags and environment needed for unattended runs.
The generic adapter turns a spec into commands, so supporting a new
manager means declaring a new spec, not writing new branches.
"""

from __future__ import annotations

import os
from enum import StrEnum

from pydantic import BaseModel, Field

# Placeholder token inside argv templates, replaced by ``yes_flags``
# in non-interactive mode and dropped otherwise.
YES = "{yes}"


class PackageManagerKind(StrEnum):
    """System package managers recognised by detection."""

    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    APK = "apk"
    BREW = "brew"
    WINGET = "winget"
    CHOCO = "choco"
    SCOOP = "scoop"
    NONE = "none"


class ManagerSpec(BaseModel):
    """Declarative description of one package manager."""

    kind: PackageManagerKind
    executable: str                     # probed on PATH by detect()
    platforms: list[str]                # platform.system() values it is native to
    install: list[str]                  # argv prefix, candidate tokens appended
    refresh: list[str] | None = None    # None = no package index to sync
    upgrade: list[str] | None = None
    yes_flags: list[str] = Field(default_factory=list)
    needs_elevation: bool = True
    bin_dirs: list[str] = Field(default_factory=list)
    noninteractive_env: dict[str, str] = Field(default_factory=dict)
    reload_path: bool = False           # re-read the persistent PATH after installs (Windows)

    def command(
        self,
        template: list[str],
        args: list[str] | None = None,
        non_interactive: bool = False,
    ) -> list[str]:
        """Expand an argv template into a concrete command.

        Args:
            template: One of ``install``, ``refresh`` or ``upgrade``.
            args: Extra tokens appended at the end (package names).
            non_interactive: Whether to substitute ``yes_flags``.

        Returns:
            The argv list, without any elevation prefix.
        """
        argv: list[str] = []
        for token in template:
            if token == YES:
                if non_interactive:
                    argv.extend(self.yes_flags)
                continue
            argv.append(token)
        argv.extend(args or [])
        return argv

    def search_dirs(self) -> list[str]:
        """Extra binary directories, with ``~`` expanded."""
        return [os.path.expanduser(d) for d in self.bin_dirs]


class ManagerBootstrap(BaseModel):
    """How to install a package manager on a platform that lacks one."""

    kind: PackageManagerKind
    command: list[str]                  # runs unprivileged, never through sudo
    noninteractive_env: dict[str, str] = Field(default_factory=dict)
