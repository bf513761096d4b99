"""
Install step and step result models.

An ``InstallStep`` is one provisioning unit: how to tell whether its
software is already present, and which package names to try on each
package manager. A ``StepResult`` is the terminal outcome the sequencer
records for it.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.models.result import AdapterResult, ErrorKind

if TYPE_CHECKING:
    from sysinit.adapters.base import PackageManagerAdapter
    from sysinit.core.context import RunContext


class StepStatus(StrEnum):
    """Terminal states of a step."""

    ALREADY_PRESENT = "already_present"
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class VersionPin(BaseModel):
    """Accept a generic executable when it reports the pinned version.

    Covers managers that only ship the latest interpreter under a
    generic name (``python`` on pacman, ``python3`` on apk). Matching
    is a literal prefix on the dotted version string.
    """

    version: str
    executables: list[str] = Field(default_factory=list)

    def matches(self, reported: str) -> bool:
        if not reported:
            return False
        return reported == self.version or reported.startswith(self.version + ".")


def _tool_map(value: object) -> object:
    # A plain list names tools packaged under their own name
    if isinstance(value, (list, tuple)):
        return {name: name for name in value}
    return value


class RepositorySetup(BaseModel):
    """Commands that register a third-party package repository."""

    name: str
    marker: str | None = None           # file that exists once configured
    condition: list[str] | None = None  # must exit 0 for the repository to apply
    requires: dict[str, str] = Field(default_factory=dict)  # executable → package
    commands: list[list[str]] = Field(default_factory=list)
    refresh_after: bool = True

    @field_validator("requires", mode="before")
    @classmethod
    def _tool_requires(cls, value: object) -> object:
        return _tool_map(value)


class SourceBuild(BaseModel):
    """Build and install a package from source as an unprivileged user.

    ``script`` runs under ``sh -c``. A ``{yes}`` token in it becomes the
    manager's assume-yes flags in non-interactive mode.
    """

    name: str
    requires: dict[str, str] = Field(default_factory=dict)  # executable → package
    script: str

    @field_validator("requires", mode="before")
    @classmethod
    def _tool_requires(cls, value: object) -> object:
        return _tool_map(value)


class InstallStep(BaseModel):
    """One idempotent provisioning unit."""

    name: str
    title: str = ""
    executables: list[str] = Field(default_factory=list)
    probe: list[str] | None = None
    version_pin: VersionPin | None = None
    paths: dict[PackageManagerKind, list[str]] = Field(default_factory=dict)
    checks: dict[PackageManagerKind, list[list[str]]] = Field(default_factory=dict)
    candidates: dict[PackageManagerKind, list[str]] = Field(default_factory=dict)
    repositories: dict[PackageManagerKind, RepositorySetup] = Field(default_factory=dict)
    fallback_repositories: dict[PackageManagerKind, RepositorySetup] = Field(default_factory=dict)
    builds: dict[PackageManagerKind, SourceBuild] = Field(default_factory=dict)
    bootstrap: list[list[str]] = Field(default_factory=list)
    applies_to: list[PackageManagerKind] = Field(default_factory=list)
    required: bool = True
    skip: bool = False
    exit_code: int = 1

    @property
    def label(self) -> str:
        return self.title or self.name

    def applies(self, kind: PackageManagerKind) -> bool:
        """Whether this step is meaningful on the given manager."""
        return not self.applies_to or kind in self.applies_to

    def candidates_for(self, kind: PackageManagerKind) -> list[str]:
        return list(self.candidates.get(kind, []))

    def is_installed(self, ctx: RunContext, adapter: PackageManagerAdapter) -> bool:
        """Check presence without installing anything.

        A probe command, when declared, is authoritative. Otherwise the
        first of these that holds wins: an executable resolving on PATH,
        a generic executable reporting the pinned version, a known
        install path for this manager (app bundles, Program Files), or
        a query command for this manager (``brew list --cask``,
        ``winget list --id``).
        """
        if self.probe:
            return adapter.run_command(ctx, self.probe).ok

        if any(adapter.is_installed(exe) for exe in self.executables):
            return True

        if self.version_pin:
            for exe in self.version_pin.executables:
                if not adapter.is_installed(exe):
                    continue
                reported = adapter.version_of(exe)
                if self.version_pin.matches(reported):
                    return True
                ctx.log.info(
                    f"{exe} reports version {reported or 'unknown'}, "
                    f"expected {self.version_pin.version}"
                )

        if any(adapter.path_exists(path) for path in self.paths.get(adapter.kind, [])):
            return True

        return any(adapter.run_command(ctx, check).ok for check in self.checks.get(adapter.kind, []))

    def install(self, ctx: RunContext, adapter: PackageManagerAdapter) -> AdapterResult:
        """Install through the adapter, falling back step by step.

        Order: repository setup (if any for this manager), package
        candidates, the candidates again from a fallback repository,
        a source build, then bootstrap commands. The first success wins;
        a privilege failure stops the chain.
        """
        setup = self.repositories.get(adapter.kind)
        if setup is not None:
            repo = adapter.add_repository(ctx, setup)
            if not repo.ok:
                return repo

        attempted: list[str] = []
        last_error = ""

        candidates = self.candidates_for(adapter.kind)
        if candidates:
            result = self._install_candidates(ctx, adapter, candidates)
            if result.ok or _denied(result):
                return result
            attempted.extend(result.attempted)
            last_error = result.error.last_error if result.error else ""

            fallback = self.fallback_repositories.get(adapter.kind)
            if fallback is not None:
                result = self._install_from(ctx, adapter, fallback, candidates)
                if result.ok:
                    return result.model_copy(update={"attempted": attempted + result.attempted})
                if _denied(result):
                    return result
                attempted.extend(result.attempted)
                if result.error and result.error.last_error:
                    last_error = result.error.last_error

        build = self.builds.get(adapter.kind)
        if build is not None:
            attempted.append(build.name)
            built = adapter.build_from_source(ctx, build)
            if built.ok:
                return AdapterResult.success(adapter.name, value=build.name, attempted=attempted)
            if _denied(built):
                return built
            last_error = built.error.last_error or built.error.message
            ctx.log.warn(f"Source build failed: {built.reason}")

        for command in self.bootstrap:
            label = " ".join(command)
            attempted.append(label)
            ctx.log.info(f"Bootstrapping {self.label}: {label}")
            outcome = adapter.run_command(ctx, command, elevate=adapter.needs_elevation)
            if outcome.ok:
                return AdapterResult.success(adapter.name, value=label, attempted=attempted)
            last_error = outcome.error
            ctx.log.warn(f"Bootstrap command failed: {label}: {last_error}")

        if not attempted:
            return AdapterResult.failure(
                adapter.name,
                ErrorKind.NO_CANDIDATE_AVAILABLE,
                f"No installation candidates for {self.label} on {adapter.kind}",
            )

        return AdapterResult.failure(
            adapter.name,
            ErrorKind.NO_CANDIDATE_AVAILABLE,
            f"All candidates for {self.label} failed on {adapter.kind}",
            candidates=attempted,
            last_error=last_error,
        )

    def _install_candidates(
        self,
        ctx: RunContext,
        adapter: PackageManagerAdapter,
        candidates: list[str],
    ) -> AdapterResult:
        """Install candidates; with bootstrap commands left, also demand presence.

        A package can install cleanly and still not serve this step
        (``python3-pip`` belongs to the distribution's default Python).
        """
        result = adapter.install(ctx, candidates)
        if not result.ok or not self.bootstrap or self.is_installed(ctx, adapter):
            return result
        ctx.log.warn(f"'{result.value}' installed but {self.label} is still not available")
        return AdapterResult.failure(
            adapter.name,
            ErrorKind.VERIFICATION_MISMATCH,
            f"'{result.value}' did not provide {self.label}",
            candidates=result.attempted,
            last_error=f"{self.label} still missing after installing '{result.value}'",
        )

    def _install_from(
        self,
        ctx: RunContext,
        adapter: PackageManagerAdapter,
        setup: RepositorySetup,
        candidates: list[str],
    ) -> AdapterResult:
        """Add a fallback repository, then try the candidates from it."""
        ctx.log.info(f"Trying {self.label} from the '{setup.name}' repository")
        repo = adapter.add_repository(ctx, setup)
        if not repo.ok:
            ctx.log.warn(f"Repository '{setup.name}' unavailable: {repo.reason}")
            return repo

        result = self._install_candidates(ctx, adapter, candidates)
        tagged = [f"{name} ({setup.name})" for name in result.attempted]
        if result.ok:
            return result.model_copy(update={"value": f"{result.value} ({setup.name})", "attempted": tagged})
        if result.error:
            return result.model_copy(
                update={
                    "attempted": tagged,
                    "error": result.error.model_copy(update={"candidates": tagged}),
                }
            )
        return result


def _denied(result: AdapterResult) -> bool:
    return result.error is not None and result.error.kind == ErrorKind.PRIVILEGE_REQUIRED


class StepResult(BaseModel):
    """Outcome of one ``InstallStep``."""

    step: str
    status: StepStatus
    reason: str = ""
    candidate: str = ""
    attempted: list[str] = Field(default_factory=list)
    error_kind: ErrorKind | None = None
    exit_code: int = 0

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED

    @classmethod
    def already_present(cls, step: InstallStep) -> StepResult:
        return cls(step=step.name, status=StepStatus.ALREADY_PRESENT)

    @classmethod
    def installed(cls, step: InstallStep, result: AdapterResult) -> StepResult:
        return cls(
            step=step.name,
            status=StepStatus.INSTALLED,
            candidate=result.value,
            attempted=result.attempted,
        )

    @classmethod
    def skipped(
        cls,
        step: InstallStep,
        reason: str = "",
        result: AdapterResult | None = None,
    ) -> StepResult:
        return cls(
            step=step.name,
            status=StepStatus.SKIPPED,
            reason=reason,
            attempted=result.attempted if result else [],
            error_kind=result.error.kind if result and result.error else None,
        )

    @classmethod
    def failure(
        cls,
        step: InstallStep,
        reason: str,
        kind: ErrorKind,
        attempted: list[str] | None = None,
    ) -> StepResult:
        return cls(
            step=step.name,
            status=StepStatus.FAILED,
            reason=reason,
            attempted=list(attempted or []),
            error_kind=kind,
            exit_code=step.exit_code,
        )
