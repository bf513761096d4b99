"""
Adapter registry — package manager detection and adapter construction.

``detect`` is called exactly once per run. It walks the preference
order for the current platform and returns the first manager whose
executable resolves; ``PackageManagerKind.NONE`` means the environment
is unsupported.
"""

from __future__ import annotations

import logging
import platform
from typing import TYPE_CHECKING

from sysinit.adapters.package_manager import ManagerAdapter
from sysinit.adapters.shell.command import CommandRunner
from sysinit.core.data.managers import MANAGER_BOOTSTRAPS, MANAGER_SPECS, preference_order
from sysinit.core.models.package_manager import PackageManagerKind

if TYPE_CHECKING:
    from sysinit.core.observability.run_log import RunLog

logger = logging.getLogger(__name__)


def detect(
    runner: CommandRunner | None = None,
    system: str | None = None,
) -> PackageManagerKind:
    """Find the package manager to use on this machine.

    Args:
        runner: Command runner used for PATH lookups.
        system: ``platform.system()`` value (default: the current one).

    Returns:
        The first available manager in preference order, or NONE.
    """
    runner = runner or CommandRunner()
    system = system or platform.system()

    for kind in preference_order(system):
        spec = MANAGER_SPECS[kind]
        if runner.which(spec.executable, spec.search_dirs()):
            logger.debug("Detected package manager %s on %s", kind, system)
            return kind

    logger.debug("No supported package manager found on %s", system)
    return PackageManagerKind.NONE


def bootstrap_manager(
    runner: CommandRunner | None = None,
    system: str | None = None,
    *,
    non_interactive: bool = False,
    log: RunLog | None = None,
) -> PackageManagerKind:
    """Install the platform's package manager, then detect again.

    Only platforms with an entry in ``MANAGER_BOOTSTRAPS`` (Homebrew on
    macOS) can be bootstrapped.

    Returns:
        The manager detected afterwards, or NONE when there is no
        bootstrap for the platform or it failed.
    """
    runner = runner or CommandRunner()
    system = system or platform.system()

    bootstrap = MANAGER_BOOTSTRAPS.get(system)
    if bootstrap is None:
        return PackageManagerKind.NONE

    if log:
        log.info(f"No package manager found; installing {bootstrap.kind}...")
    env = bootstrap.noninteractive_env if non_interactive else None
    result = runner.run(bootstrap.command, env_overrides=env)
    if not result.ok:
        if log:
            log.warn(f"Installing {bootstrap.kind} failed: {result.error}")
        return PackageManagerKind.NONE

    return detect(runner, system)


def create_adapter(
    kind: PackageManagerKind,
    runner: CommandRunner | None = None,
) -> ManagerAdapter:
    """Build the adapter for a detected manager.

    Raises:
        ValueError: For ``NONE`` or a kind without a spec.
    """
    spec = MANAGER_SPECS.get(kind)
    if spec is None:
        raise ValueError(f"No package manager adapter for '{kind}'")
    return ManagerAdapter(spec, runner=runner)


def available_managers(
    runner: CommandRunner | None = None,
    system: str | None = None,
) -> dict[str, bool]:
    """Availability of every manager native to the platform, in order."""
    runner = runner or CommandRunner()
    system = system or platform.system()
    return {
        str(kind): create_adapter(kind, runner).is_available()
        for kind in preference_order(system)
    }
