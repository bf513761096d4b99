"""
Generic package manager adapter — drives any manager from its ManagerSpec.

Refresh, install and upgrade are argv templates; this adapter adds the
elevation prefix, the non-interactive flags and environment, and the
ordered candidate fallback. A failed candidate is never retried: the
adapter moves on to the next one.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from sysinit.adapters.base import PackageManagerAdapter
from sysinit.adapters.shell.command import EXIT_NOT_FOUND, CommandResult, CommandRunner
from sysinit.core.models.package_manager import YES, ManagerSpec, PackageManagerKind
from sysinit.core.models.result import AdapterResult, ErrorKind
from sysinit.core.models.step import RepositorySetup, SourceBuild

if TYPE_CHECKING:
    from sysinit.core.context import RunContext

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)")

# What sudo prints when it will not run without a password prompt
_SUDO_REFUSED = ("a password is required", "a terminal is required")


class ManagerAdapter(PackageManagerAdapter):
    """Package manager adapter backed by a declarative ``ManagerSpec``."""

    def __init__(self, spec: ManagerSpec, runner: CommandRunner | None = None):
        self._spec = spec
        self._runner = runner or CommandRunner()

    @property
    def kind(self) -> PackageManagerKind:
        return self._spec.kind

    @property
    def spec(self) -> ManagerSpec:
        return self._spec

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    @property
    def needs_elevation(self) -> bool:
        return self._spec.needs_elevation

    def is_available(self) -> bool:
        """Whether the manager's own executable resolves."""
        return self._runner.which(self._spec.executable, self._spec.search_dirs()) is not None

    # ── Operations ──────────────────────────────────────────────

    def refresh(self, ctx: RunContext) -> AdapterResult:
        if self._spec.refresh is None:
            return AdapterResult.success(self.name, value="no package index")

        denied = self._check_privilege(ctx)
        if denied:
            return denied

        ctx.log.info(f"Refreshing {self.name} package index...")
        result = self._run_manager(ctx, self._spec.refresh)
        if result.ok:
            return AdapterResult.success(self.name, value="refreshed")
        if self._sudo_refused(ctx, result):
            return self._privilege_failure(f"refreshing the {self.name} index", result.error)
        return AdapterResult.failure(
            self.name,
            ErrorKind.INDEX_REFRESH_FAILED,
            f"{self.name} index refresh failed",
            last_error=result.error,
        )

    def install(self, ctx: RunContext, candidates: Sequence[str]) -> AdapterResult:
        if not candidates:
            return AdapterResult.failure(
                self.name,
                ErrorKind.NO_CANDIDATE_AVAILABLE,
                f"No candidate names given for {self.name}",
            )

        denied = self._check_privilege(ctx)
        if denied:
            return denied

        attempted: list[str] = []
        last_error = ""
        for candidate in candidates:
            attempted.append(candidate)
            ctx.log.info(f"Installing '{candidate}' via {self.name}")
            result = self._run_manager(ctx, self._spec.install, shlex.split(candidate))
            if result.ok:
                self._reload_path()
                return AdapterResult.success(self.name, value=candidate, attempted=attempted)
            if self._sudo_refused(ctx, result):
                # Every other candidate would be refused the same way
                return self._privilege_failure(f"installing '{candidate}'", result.error)
            last_error = result.error
            ctx.log.warn(f"Candidate '{candidate}' failed: {last_error}")

        return AdapterResult.failure(
            self.name,
            ErrorKind.NO_CANDIDATE_AVAILABLE,
            f"No candidate could be installed via {self.name}",
            candidates=attempted,
            last_error=last_error,
        )

    def is_installed(self, executable: str) -> bool:
        return self._runner.which(executable, self._spec.search_dirs()) is not None

    def path_exists(self, path: str) -> bool:
        return self._runner.path_exists(os.path.expanduser(os.path.expandvars(path)))

    def upgrade(self, ctx: RunContext) -> AdapterResult:
        if self._spec.upgrade is None:
            return AdapterResult.success(self.name, value="no upgrade command")

        denied = self._check_privilege(ctx)
        if denied:
            return denied

        ctx.log.info(f"Upgrading installed packages via {self.name}...")
        result = self._run_manager(ctx, self._spec.upgrade)
        if result.ok:
            return AdapterResult.success(self.name, value="upgraded")
        if self._sudo_refused(ctx, result):
            return self._privilege_failure(f"upgrading via {self.name}", result.error)
        return AdapterResult.failure(
            self.name,
            ErrorKind.COMMAND_FAILED,
            f"{self.name} system upgrade failed",
            last_error=result.error,
        )

    def add_repository(self, ctx: RunContext, setup: RepositorySetup) -> AdapterResult:
        if setup.marker and self._runner.path_exists(setup.marker):
            ctx.log.info(f"Repository '{setup.name}' already configured")
            return AdapterResult.success(self.name, value=setup.name)

        if setup.condition and not self.run_command(ctx, setup.condition).ok:
            ctx.log.info(f"Repository '{setup.name}' does not apply to this system")
            return AdapterResult.failure(
                self.name,
                ErrorKind.NO_CANDIDATE_AVAILABLE,
                f"Repository '{setup.name}' does not apply to this system",
            )

        if ctx.elevation.prefix(ctx.non_interactive) is None:
            return self._privilege_failure(f"adding repository '{setup.name}'")

        self._ensure_tools(ctx, setup.requires)

        ctx.log.info(f"Configuring repository '{setup.name}' for {self.name}...")
        for command in setup.commands:
            result = self.run_command(ctx, command, elevate=True)
            if result.ok:
                continue
            if self._sudo_refused(ctx, result):
                return self._privilege_failure(f"adding repository '{setup.name}'", result.error)
            return AdapterResult.failure(
                self.name,
                ErrorKind.COMMAND_FAILED,
                f"Repository setup for '{setup.name}' failed at: {' '.join(command)}",
                last_error=result.error,
            )

        if setup.refresh_after:
            refreshed = self.refresh(ctx)
            if not refreshed.ok:
                ctx.log.warn(f"Index refresh after adding '{setup.name}' failed: {refreshed.reason}")

        return AdapterResult.success(self.name, value=setup.name)

    def build_from_source(self, ctx: RunContext, build: SourceBuild) -> AdapterResult:
        prefix: list[str] = []
        if ctx.elevation.is_admin:
            # Build tools such as makepkg refuse to run as root
            user = ctx.elevation.invoking_user
            if not user or not ctx.elevation.sudo:
                return self._privilege_failure(
                    f"building '{build.name}' (needs a non-root user; run through sudo)"
                )
            prefix = ["sudo", "-u", user]

        self._ensure_tools(ctx, build.requires)

        yes = " ".join(self._spec.yes_flags) if ctx.non_interactive else ""
        script = build.script.replace(YES, yes)

        ctx.log.info(f"Building '{build.name}' from source...")
        result = self._runner.run([*prefix, "sh", "-c", script], env_overrides=self._env(ctx))
        if result.ok:
            return AdapterResult.success(self.name, value=build.name)
        if self._sudo_refused(ctx, result):
            return self._privilege_failure(f"building '{build.name}'", result.error)
        return AdapterResult.failure(
            self.name,
            ErrorKind.COMMAND_FAILED,
            f"Source build '{build.name}' failed",
            candidates=[build.name],
            last_error=result.error,
        )

    def run_command(
        self,
        ctx: RunContext,
        argv: Sequence[str],
        elevate: bool = False,
    ) -> CommandResult:
        command = list(argv)
        if elevate:
            prefix = ctx.elevation.prefix(ctx.non_interactive)
            if prefix is None:
                return CommandResult(
                    command=command,
                    return_code=EXIT_NOT_FOUND,
                    stderr="elevated privileges required but neither root nor sudo is available",
                )
            command = prefix + command
        return self._runner.run(command, env_overrides=self._env(ctx))

    def version_of(self, executable: str) -> str:
        path = self._runner.which(executable, self._spec.search_dirs())
        if path is None:
            return ""
        result = self._runner.run([path, "--version"])
        if not result.ok:
            return ""
        # Python 2 printed its version on stderr
        match = _VERSION_RE.search(f"{result.stdout} {result.stderr}")
        return match.group(1) if match else ""

    # ── Helpers ─────────────────────────────────────────────────

    def _run_manager(
        self,
        ctx: RunContext,
        template: list[str],
        args: list[str] | None = None,
    ) -> CommandResult:
        argv = self._spec.command(template, args, non_interactive=ctx.non_interactive)
        return self.run_command(ctx, argv, elevate=self._spec.needs_elevation)

    def _ensure_tools(self, ctx: RunContext, requires: Mapping[str, str]) -> None:
        """Install missing helper tools; a failure only warns."""
        for tool, package in requires.items():
            if self.is_installed(tool):
                continue
            ctx.log.info(f"Installing prerequisite tool: {tool}")
            prereq = self.install(ctx, [package])
            if not prereq.ok:
                ctx.log.warn(f"Prerequisite {tool} unavailable: {prereq.reason}")

    def _reload_path(self) -> None:
        if not self._spec.reload_path:
            return
        added = self._runner.reload_path()
        if added:
            logger.debug("PATH entries picked up after install: %s", added)

    def _env(self, ctx: RunContext) -> dict[str, str]:
        return dict(self._spec.noninteractive_env) if ctx.non_interactive else {}

    def _check_privilege(self, ctx: RunContext) -> AdapterResult | None:
        if not self._spec.needs_elevation:
            return None
        if ctx.elevation.prefix(ctx.non_interactive) is not None:
            return None
        return self._privilege_failure(f"running {self.name}")

    @staticmethod
    def _sudo_refused(ctx: RunContext, result: CommandResult) -> bool:
        if result.ok or ctx.elevation.is_admin:
            return False
        stderr = result.stderr.lower()
        return any(marker in stderr for marker in _SUDO_REFUSED)

    def _privilege_failure(self, action: str, last_error: str = "") -> AdapterResult:
        logger.debug("Privilege check failed for %s", action)
        return AdapterResult.failure(
            self.name,
            ErrorKind.PRIVILEGE_REQUIRED,
            f"Elevated privileges are required for {action}; "
            "run as root/Administrator or with passwordless sudo",
            last_error=last_error,
        )
