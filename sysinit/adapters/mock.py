"""
Mock runner — universal test double for command execution.

Simulates a machine without touching it: a set of executables that
"resolve on PATH", files that exist, version strings, commands that
fail, and which executables appear when a package is installed.
Every command it receives is kept in ``call_log``.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence

from sysinit.adapters.shell.command import EXIT_NOT_FOUND, CommandResult, CommandRunner

_ELEVATORS = ("sudo",)


class MockRunner(CommandRunner):
    """Command runner backed by an in-memory fake system.

    By default every command whose executable is known succeeds.

    Args:
        executables: Names that resolve on the simulated PATH.
        provides: Package token → executables that appear after a
            successful command containing that token.
        versions: Executable → text printed for ``--version``.
        files: Paths that exist.
    """

    def __init__(
        self,
        executables: Iterable[str] = (),
        provides: Mapping[str, Iterable[str]] | None = None,
        versions: Mapping[str, str] | None = None,
        files: Iterable[str] = (),
    ):
        self._executables: set[str] = set(executables)
        self._provides = {k: list(v) for k, v in (provides or {}).items()}
        self._versions = dict(versions or {})
        self._files: set[str] = set(files)
        self._failures: dict[str, tuple[str, int | None]] = {}
        self._effects: dict[str, tuple[list[str], list[str]]] = {}
        self._path_reloads = 0
        self._call_log: list[list[str]] = []
        self._env_log: list[dict[str, str]] = []

    # ── Configuration ───────────────────────────────────────────

    def add_executable(self, *names: str) -> None:
        self._executables.update(names)

    def remove_executable(self, name: str) -> None:
        self._executables.discard(name)

    def set_version(self, executable: str, output: str) -> None:
        self._versions[executable] = output

    def set_failure(self, pattern: str, error: str = "Mock failure", times: int | None = None) -> None:
        """Make commands containing ``pattern`` fail.

        Args:
            pattern: Substring matched against the space-joined argv.
            error: stderr text for the failure.
            times: Fail only this many times, then succeed (None = always).
        """
        self._failures[pattern] = (error, times)

    def on_success(
        self,
        pattern: str,
        executables: Iterable[str] = (),
        files: Iterable[str] = (),
    ) -> None:
        """Make executables or files appear after a successful command.

        Args:
            pattern: Substring matched against the space-joined argv.
            executables: Names added to the simulated PATH.
            files: Paths that start to exist (app bundles, for example).
        """
        self._effects[pattern] = (list(executables), list(files))

    # ── Inspection ──────────────────────────────────────────────

    @property
    def call_log(self) -> list[list[str]]:
        """All commands this mock has received."""
        return self._call_log

    @property
    def env_log(self) -> list[dict[str, str]]:
        """Environment overrides passed with each command."""
        return self._env_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def path_reloads(self) -> int:
        """How often the persistent PATH was re-read."""
        return self._path_reloads

    def calls_matching(self, pattern: str) -> list[list[str]]:
        return [c for c in self._call_log if pattern in " ".join(c)]

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._env_log.clear()
        self._failures.clear()

    # ── CommandRunner interface ─────────────────────────────────

    def which(self, name: str, extra_dirs: Iterable[str] = ()) -> str | None:
        if name in self._executables:
            return f"/usr/bin/{name}"
        return None

    def path_exists(self, path: str) -> bool:
        return path in self._files

    def reload_path(self) -> list[str]:
        self._path_reloads += 1
        return []

    def run(
        self,
        cmd: Sequence[str],
        *,
        env_overrides: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = list(cmd)
        self._call_log.append(argv)
        self._env_log.append(dict(env_overrides or {}))

        program = self._program(argv)
        if program is None or program not in self._executables:
            name = program or (argv[0] if argv else "")
            return CommandResult(
                command=argv,
                return_code=EXIT_NOT_FOUND,
                stderr=f"command not found: {name}",
            )

        joined = " ".join(argv)
        for pattern, (error, times) in list(self._failures.items()):
            if pattern not in joined:
                continue
            if times is not None:
                if times <= 1:
                    del self._failures[pattern]
                else:
                    self._failures[pattern] = (error, times - 1)
            return CommandResult(command=argv, return_code=1, stderr=error)

        stdout = ""
        if "--version" in argv and program in self._versions:
            stdout = self._versions[program]

        for token in argv:
            for exe in self._provides.get(token, []):
                self._executables.add(exe)
        for pattern, (executables, files) in self._effects.items():
            if pattern in joined:
                self._executables.update(executables)
                self._files.update(files)

        return CommandResult(command=argv, return_code=0, stdout=stdout)

    @staticmethod
    def _program(argv: list[str]) -> str | None:
        """The executable actually run, looking through a sudo prefix."""
        index = 0
        while index < len(argv) and argv[index] in _ELEVATORS:
            index += 1
            while index < len(argv) and argv[index].startswith("-"):
                # -u takes the target user as its argument
                index += 2 if argv[index] == "-u" else 1
        return os.path.basename(argv[index]) if index < len(argv) else None
