"""
Static catalogs — package manager specs and the default step list.

Usage::

    from sysinit.core.data import MANAGER_SPECS, build_steps

    spec = MANAGER_SPECS[PackageManagerKind.APT]
    steps = build_steps(config)
"""

from sysinit.core.data.managers import MANAGER_BOOTSTRAPS, MANAGER_SPECS, preference_order
from sysinit.core.data.steps import STEP_NAMES, build_steps, default_steps

__all__ = [
    "MANAGER_BOOTSTRAPS",
    "MANAGER_SPECS",
    "STEP_NAMES",
    "build_steps",
    "default_steps",
    "preference_order",
]
