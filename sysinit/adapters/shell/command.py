"""
Command runner — the single place where subprocesses are started.

Package-manager calls, probes and bootstrap commands all go through
``CommandRunner.run``. It blocks until the process exits and never
raises: a missing executable or an OS error becomes a failed
``CommandResult``. ``MockRunner`` (adapters/mock.py) replaces it in
tests with a simulated PATH.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import time
from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Keep captured output bounded; installs can print a lot.
_OUTPUT_TAIL = 4000

EXIT_NOT_FOUND = 127


class CommandResult(BaseModel):
    """Outcome of one subprocess invocation."""

    command: list[str] = Field(default_factory=list)
    return_code: int = 0
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.return_code == 0

    @property
    def error(self) -> str:
        """Last line of stderr, or a generic exit-code message."""
        if self.ok:
            return ""
        lines = [line for line in self.stderr.strip().splitlines() if line.strip()]
        if lines:
            return lines[-1].strip()
        return f"Command exited with code {self.return_code}"


class CommandRunner:
    """Run external commands and resolve executables on PATH."""

    def which(self, name: str, extra_dirs: Iterable[str] = ()) -> str | None:
        """Resolve an executable on PATH, then in ``extra_dirs``."""
        found = shutil.which(name)
        if found:
            return found
        for directory in extra_dirs:
            if not os.path.isdir(directory):
                continue
            found = shutil.which(name, path=directory)
            if found:
                return found
        return None

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def reload_path(self) -> list[str]:
        """Merge the PATH recorded in the Windows registry into this process.

        Windows installers update the persistent PATH, which a running
        process never sees. Returns the directories added; always empty
        on other platforms.
        """
        if sys.platform != "win32":
            return []

        import winreg

        keys = [
            (winreg.HKEY_LOCAL_MACHINE, r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"),
            (winreg.HKEY_CURRENT_USER, "Environment"),
        ]
        recorded: list[str] = []
        for hive, subkey in keys:
            try:
                with winreg.OpenKey(hive, subkey) as key:
                    value, _ = winreg.QueryValueEx(key, "Path")
            except OSError:
                continue
            recorded.extend(os.path.expandvars(p) for p in str(value).split(os.pathsep) if p)

        current = [p for p in os.environ.get("PATH", "").split(os.pathsep) if p]
        added = [p for p in dict.fromkeys(recorded) if p not in current]
        if added:
            os.environ["PATH"] = os.pathsep.join(current + added)
        return added

    def run(
        self,
        cmd: Sequence[str],
        *,
        env_overrides: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command to completion and capture its output.

        Args:
            cmd: argv list. Never passed through a shell.
            env_overrides: Extra environment variables.
            timeout: Optional timeout in seconds (none by default).

        Returns:
            CommandResult. Never raises.
        """
        argv = list(cmd)
        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)

        logger.debug("Executing: %s", " ".join(argv))
        start = time.monotonic()

        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                env=env,
                timeout=timeout,
            )
        except FileNotFoundError:
            return CommandResult(
                command=argv,
                return_code=EXIT_NOT_FOUND,
                stderr=f"command not found: {argv[0] if argv else ''}",
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=argv,
                return_code=-1,
                stderr=f"Command timed out after {timeout}s",
            )
        except OSError as e:
            return CommandResult(command=argv, return_code=-1, stderr=f"OS error: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            command=argv,
            return_code=proc.returncode,
            stdout=(proc.stdout or "")[-_OUTPUT_TAIL:],
            stderr=(proc.stderr or "")[-_OUTPUT_TAIL:],
            elapsed_ms=elapsed_ms,
        )

        if result.stdout:
            logger.debug("stdout: %s", result.stdout.strip())
        if not result.ok:
            logger.debug("exit %d, stderr: %s", result.return_code, result.stderr.strip())
        return result
