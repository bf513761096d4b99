"""
Shared test fixtures and configuration.
"""

import logging

import pytest

from sysinit.adapters.mock import MockRunner
from sysinit.adapters.registry import create_adapter
from sysinit.core.context import Elevation, RunContext
from sysinit.core.data.steps import default_steps
from sysinit.core.models.package_manager import PackageManagerKind
from sysinit.core.observability.run_log import RunLog

# Package tokens → executables a successful install puts on PATH.
# True for Linux packages and brew formulae only: tests of casks and
# Windows installers pass their own mapping so nothing appears on PATH.
PROVIDES = {
    "python3.11": ["python3.11"],
    "python@3.11": ["python3.11"],
    "git": ["git"],
    "1password": ["1password"],
    "1password-cli": ["op"],
    "software-properties-common": ["add-apt-repository"],
}


@pytest.fixture(autouse=True)
def _reset_logging():
    """Detach handlers a test (or the CLI) attached to the root logger."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler).__module__.startswith("_pytest"):
            continue
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)


@pytest.fixture
def admin() -> Elevation:
    return Elevation(is_admin=True)


@pytest.fixture
def make_runner():
    """Factory for a MockRunner with the standard package mapping."""

    def _make(*executables: str, **kwargs) -> MockRunner:
        kwargs.setdefault("provides", PROVIDES)
        return MockRunner(executables=executables, **kwargs)

    return _make


@pytest.fixture
def make_ctx(admin):
    """Factory for a RunContext (non-interactive, elevated by default)."""

    def _make(
        kind: PackageManagerKind = PackageManagerKind.APT,
        steps=None,
        non_interactive: bool = True,
        elevation: Elevation | None = None,
    ) -> RunContext:
        return RunContext(
            kind=kind,
            non_interactive=non_interactive,
            elevation=elevation or admin,
            steps=tuple(default_steps() if steps is None else steps),
            log=RunLog(),
            system="Linux",
        )

    return _make


@pytest.fixture
def apt(make_runner):
    """An apt machine: manager, shell tools, nothing provisioned yet."""
    runner = make_runner("apt-get", "sh", "mkdir", "curl", "gpg")
    return runner, create_adapter(PackageManagerKind.APT, runner)
