"""
Provisioning sequencer — the central install loop.

Runs the step list of a ``RunContext`` in declared order, one step at a
time, through a single package manager adapter. Every step ends in one
of four terminal states; a required step that fails aborts the run with
that step's exit code and nothing after it executes.

Flow:
    unsupported? → upgrade (opt-in) → refresh (best-effort)
        → for each step: skip? present? install → verify
        → post-provisioning (only when completed)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from sysinit.adapters.base import PackageManagerAdapter
from sysinit.core.context import RunContext
from sysinit.core.models.result import AdapterResult, ErrorKind, ExitCode
from sysinit.core.models.step import InstallStep, StepResult, StepStatus

logger = logging.getLogger(__name__)

# A post-provisioning action returns False when it failed.
PostAction = Callable[[RunContext], bool]


class SequenceState(StrEnum):
    """Terminal states of the sequencer."""

    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ProvisioningReport:
    """Result of running the step sequence."""

    kind: str = ""
    state: SequenceState = SequenceState.COMPLETED
    exit_code: int = ExitCode.OK
    results: list[StepResult] = field(default_factory=list)
    error: str | None = None
    error_kind: ErrorKind | None = None
    refreshed: bool | None = None
    post_actions_run: int = 0
    post_actions_failed: int = 0

    @property
    def total(self) -> int:
        return len(self.results)

    def count(self, status: StepStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def installed(self) -> int:
        return self.count(StepStatus.INSTALLED)

    @property
    def already_present(self) -> int:
        return self.count(StepStatus.ALREADY_PRESENT)

    @property
    def skipped(self) -> int:
        return self.count(StepStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(StepStatus.FAILED)

    @property
    def ok(self) -> bool:
        return self.exit_code == ExitCode.OK

    def result_for(self, step: str) -> StepResult | None:
        for result in self.results:
            if result.step == step:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "package_manager": self.kind,
            "state": str(self.state),
            "exit_code": int(self.exit_code),
            "error": self.error,
            "error_kind": str(self.error_kind) if self.error_kind else None,
            "refreshed": self.refreshed,
            "installed": self.installed,
            "already_present": self.already_present,
            "skipped": self.skipped,
            "failed": self.failed,
            "post_actions_run": self.post_actions_run,
            "post_actions_failed": self.post_actions_failed,
            "steps": [r.model_dump(mode="json") for r in self.results],
        }


def run_sequence(
    ctx: RunContext,
    adapter: PackageManagerAdapter | None,
    *,
    refresh: bool = True,
    upgrade: bool = False,
    skip: Iterable[str] = (),
    post_actions: Sequence[PostAction] = (),
) -> ProvisioningReport:
    """Run every step of ``ctx`` in order.

    Args:
        ctx: The run context (kind, flags, steps, log).
        adapter: Adapter for ``ctx.kind``; None when no manager was found.
        refresh: Sync the package index once before the first step.
        upgrade: Upgrade all installed packages before the first step.
        skip: Step names to record as skipped without checking.
        post_actions: Collaborators run after a completed sequence.

    Returns:
        ProvisioningReport. An aborted report carries the exit code of
        the failing step (or 10 for an unsupported environment).
    """
    report = ProvisioningReport(kind=str(ctx.kind))

    if not ctx.supported or adapter is None:
        message = "No supported package manager found for this environment"
        ctx.log.error(message)
        report.state = SequenceState.ABORTED
        report.exit_code = ExitCode.UNSUPPORTED_ENVIRONMENT
        report.error = message
        report.error_kind = ErrorKind.UNSUPPORTED_ENVIRONMENT
        return report

    if upgrade:
        upgraded = adapter.upgrade(ctx)
        if not upgraded.ok:
            ctx.log.warn(f"System upgrade failed; continuing: {upgraded.reason}")

    if refresh:
        refreshed = adapter.refresh(ctx)
        report.refreshed = refreshed.ok
        if not refreshed.ok:
            ctx.log.warn(f"Package index refresh failed; continuing with cached index: {refreshed.reason}")

    skip_names = set(skip)
    for index, step in enumerate(ctx.steps, start=1):
        ctx.log.info(f"Step {index}/{len(ctx.steps)}: {step.label}")
        result = run_step(ctx, adapter, step, skipped=step.name in skip_names)
        report.results.append(result)

        if result.failed and step.required:
            report.state = SequenceState.ABORTED
            report.exit_code = step.exit_code
            report.error = f"{step.label}: {result.reason}"
            report.error_kind = result.error_kind
            ctx.log.error(f"Aborting: required step '{step.name}' failed (exit {step.exit_code})")
            return report

    for action in post_actions:
        report.post_actions_run += 1
        if not action(ctx):
            report.post_actions_failed += 1

    if report.post_actions_failed:
        report.exit_code = ExitCode.ERROR
        report.error = f"{report.post_actions_failed} post-provisioning action(s) failed"

    ctx.log.info(
        f"Provisioning completed: {report.installed} installed, "
        f"{report.already_present} already present, {report.skipped} skipped"
    )
    return report


def run_step(
    ctx: RunContext,
    adapter: PackageManagerAdapter,
    step: InstallStep,
    skipped: bool = False,
) -> StepResult:
    """Drive one step from pending to a terminal state."""
    if skipped or step.skip:
        ctx.log.info(f"{step.label}: skipped by request")
        return StepResult.skipped(step, "skipped by request")

    if not step.applies(adapter.kind):
        ctx.log.info(f"{step.label}: not applicable on {adapter.kind}")
        return StepResult.skipped(step, f"not applicable on {adapter.kind}")

    if step.is_installed(ctx, adapter):
        ctx.log.info(f"{step.label} already present")
        return StepResult.already_present(step)

    ctx.log.info(f"Installing {step.label}...")
    outcome = step.install(ctx, adapter)
    if not outcome.ok:
        logger.debug("%s install failed after %s", step.name, outcome.attempted)
        return _fail(ctx, step, outcome)

    if not step.is_installed(ctx, adapter):
        mismatch = AdapterResult.failure(
            adapter.name,
            ErrorKind.VERIFICATION_MISMATCH,
            f"verification mismatch: '{outcome.value}' reported success "
            f"but {step.label} is still not available",
            candidates=outcome.attempted,
        )
        return _fail(ctx, step, mismatch)

    ctx.log.info(f"{step.label} installed via '{outcome.value}'")
    return StepResult.installed(step, outcome)


def _fail(ctx: RunContext, step: InstallStep, outcome: AdapterResult) -> StepResult:
    """Record a failure as FAILED (required) or SKIPPED (optional)."""
    reason = outcome.reason
    kind = outcome.error.kind if outcome.error else ErrorKind.COMMAND_FAILED
    if step.required:
        ctx.log.error(f"{step.label} installation failed: {reason}")
        return StepResult.failure(step, reason, kind, attempted=outcome.attempted)

    ctx.log.warn(f"{step.label} installation failed; optional step skipped: {reason}")
    return StepResult.skipped(step, reason, outcome)
