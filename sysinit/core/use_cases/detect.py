"""
Detection use case — report what a provisioning run would work with.

Read-only: resolves the operating system, the package manager, the
elevation state and the step plan without installing anything.
"""

from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field

from sysinit.adapters.registry import available_managers, detect
from sysinit.adapters.shell.command import CommandRunner
from sysinit.core.context import Elevation, detect_elevation
from sysinit.core.data.steps import build_steps
from sysinit.core.models.config import SysinitConfig
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.step import InstallStep

logger = logging.getLogger(__name__)


@dataclass
class DetectResult:
    """Result of the detect use case."""

    system: str = ""
    release: str = ""
    kind: PackageManagerKind = PackageManagerKind.NONE
    managers: dict[str, bool] = field(default_factory=dict)
    elevation: Elevation = field(default_factory=Elevation)
    steps: list[InstallStep] = field(default_factory=list)

    @property
    def supported(self) -> bool:
        return self.kind != PackageManagerKind.NONE

    def plan(self) -> list[dict]:
        """The step list as seen by the detected manager."""
        rows = []
        for step in self.steps:
            applies = self.supported and step.applies(self.kind)
            rows.append({
                "name": step.name,
                "title": step.label,
                "required": step.required,
                "skip": step.skip,
                "applies": applies,
                "exit_code": int(step.exit_code),
                "executables": list(step.executables),
                "candidates": step.candidates_for(self.kind) if applies else [],
                "repository": (
                    step.repositories[self.kind].name
                    if applies and self.kind in step.repositories
                    else None
                ),
                "fallback_repository": (
                    step.fallback_repositories[self.kind].name
                    if applies and self.kind in step.fallback_repositories
                    else None
                ),
                "build": (
                    step.builds[self.kind].name
                    if applies and self.kind in step.builds
                    else None
                ),
            })
        return rows

    def to_dict(self) -> dict:
        return {
            "system": self.system,
            "release": self.release,
            "package_manager": str(self.kind),
            "supported": self.supported,
            "managers": dict(self.managers),
            "is_admin": self.elevation.is_admin,
            "sudo": self.elevation.sudo,
            "steps": self.plan(),
        }


def run_detect(
    config: SysinitConfig | None = None,
    runner: CommandRunner | None = None,
    system: str | None = None,
    elevation: Elevation | None = None,
) -> DetectResult:
    """Inspect the environment.

    Args:
        config: Configuration whose step overrides shape the plan.
        runner: Command runner used for PATH lookups.
        system: ``platform.system()`` override.
        elevation: Pre-resolved elevation state.

    Returns:
        DetectResult describing the machine and the step plan.
    """
    runner = runner or CommandRunner()
    system = system or platform.system()

    kind = detect(runner, system)
    logger.debug("Detected %s on %s", kind, system)

    return DetectResult(
        system=system,
        release=platform.release(),
        kind=kind,
        managers=available_managers(runner, system),
        elevation=elevation or detect_elevation(runner),
        steps=build_steps(config),
    )
