"""Adapters — package manager bindings and command execution.

Public re-exports for convenient access.
"""

from sysinit.adapters.base import PackageManagerAdapter
from sysinit.adapters.mock import MockRunner
from sysinit.adapters.package_manager import ManagerAdapter
from sysinit.adapters.registry import available_managers, bootstrap_manager, create_adapter, detect
from sysinit.adapters.shell.command import CommandResult, CommandRunner

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ManagerAdapter",
    "MockRunner",
    "PackageManagerAdapter",
    "available_managers",
    "bootstrap_manager",
    "create_adapter",
    "detect",
]
