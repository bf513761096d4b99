"""
Provision use case — bring a machine to the baseline toolset.

This is the top-level orchestrator: it resolves the run context
(package manager, privileges, steps), drives the sequencer, and runs
the configured post-provisioning commands. The full vertical slice from
user intent to an exit code.
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from sysinit.adapters.registry import bootstrap_manager, create_adapter, detect
from sysinit.adapters.shell.command import CommandRunner
from sysinit.core.config.loader import ConfigError, load_config
from sysinit.core.context import Elevation, RunContext, detect_elevation
from sysinit.core.data.steps import build_steps
from sysinit.core.engine.post_provision import build_hooks
from sysinit.core.engine.sequencer import ProvisioningReport, run_sequence
from sysinit.core.models.config import SysinitConfig
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.result import ExitCode
from sysinit.core.observability.run_log import RunLog

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    report: ProvisioningReport | None = None
    context: RunContext | None = None
    config: SysinitConfig | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.report is not None:
            return int(self.report.exit_code)
        return int(ExitCode.ERROR) if self.error else int(ExitCode.OK)

    def to_dict(self) -> dict:
        result: dict = {"exit_code": self.exit_code}
        if self.error and self.report is None:
            result["error"] = self.error
            return result

        if self.context:
            result["system"] = self.context.system
            result["non_interactive"] = self.context.non_interactive
        if self.report:
            result["report"] = self.report.to_dict()
        if self.context:
            result["log"] = [e.model_dump() for e in self.context.log.entries]
        return result


def run_provisioning(
    config: SysinitConfig | None = None,
    config_path: Path | None = None,
    non_interactive: bool = False,
    refresh: bool | None = None,
    upgrade: bool | None = None,
    skip: Iterable[str] = (),
    runner: CommandRunner | None = None,
    system: str | None = None,
    elevation: Elevation | None = None,
    log: RunLog | None = None,
) -> ProvisionResult:
    """Provision the baseline toolset on this machine.

    Args:
        config: Pre-loaded configuration. Loaded from ``config_path``
            (or discovered) when None.
        config_path: Optional explicit path to sysinit.yml.
        non_interactive: Pass assume-yes flags and never prompt.
        refresh: Override the config's ``refresh`` toggle.
        upgrade: Override the config's ``upgrade`` toggle.
        skip: Step names to skip.
        runner: Command runner (a MockRunner in tests).
        system: ``platform.system()`` override.
        elevation: Pre-resolved elevation state.
        log: Run log sink.

    Returns:
        ProvisionResult whose ``exit_code`` is the process exit code.
    """
    result = ProvisionResult()

    # ── Load config ──────────────────────────────────────────────
    if config is None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result
    result.config = config

    runner = runner or CommandRunner()
    system = system or platform.system()
    log = log or RunLog()

    # ── Resolve the run context (detect exactly once) ────────────
    kind = detect(runner, system)
    log.info(f"Operating system: {system} {platform.release()}".rstrip())
    if kind == PackageManagerKind.NONE and config.sources.homebrew:
        kind = bootstrap_manager(runner, system, non_interactive=non_interactive, log=log)
    if kind == PackageManagerKind.NONE:
        log.info("Package manager: none detected")
    else:
        log.info(f"Package manager: {kind}")
    if non_interactive:
        log.info("Non-interactive mode: prompts are suppressed")

    ctx = RunContext(
        kind=kind,
        non_interactive=non_interactive,
        elevation=elevation or detect_elevation(runner),
        steps=tuple(build_steps(config)),
        log=log,
        system=system,
    )
    result.context = ctx

    if not ctx.elevation.can_elevate:
        log.warn("Not running as root/Administrator and sudo is unavailable")

    # ── Sequence ─────────────────────────────────────────────────
    adapter = create_adapter(kind, runner) if ctx.supported else None
    hooks = build_hooks(config.post_provision, adapter) if adapter else []

    result.report = run_sequence(
        ctx,
        adapter,
        refresh=config.refresh if refresh is None else refresh,
        upgrade=config.upgrade if upgrade is None else upgrade,
        skip=skip,
        post_actions=hooks,
    )

    logger.debug(
        "Provisioning finished: state=%s exit=%d",
        result.report.state,
        result.report.exit_code,
    )
    return result
