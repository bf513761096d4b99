"""
Domain models — Pydantic types for provisioning.

All models are re-exported here for convenient access:

    from sysinit.core.models import InstallStep, StepResult, PackageManagerKind
"""

from sysinit.core.models.config import SourcesConfig, StepOverride, SysinitConfig
from sysinit.core.models.package_manager import ManagerSpec, PackageManagerKind
from sysinit.core.models.result import AdapterError, AdapterResult, ErrorKind, ExitCode
from sysinit.core.models.step import (
    InstallStep,
    RepositorySetup,
    SourceBuild,
    StepResult,
    StepStatus,
    VersionPin,
)

__all__ = [
    # result.py
    "AdapterError",
    "AdapterResult",
    "ErrorKind",
    "ExitCode",
    # step.py
    "InstallStep",
    # package_manager.py
    "ManagerSpec",
    "PackageManagerKind",
    "RepositorySetup",
    "SourceBuild",
    # config.py
    "SourcesConfig",
    "StepOverride",
    "StepResult",
    "StepStatus",
    "SysinitConfig",
    "VersionPin",
]
