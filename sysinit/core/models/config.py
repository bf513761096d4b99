"""
Configuration model — loaded from sysinit.yml.

Every field has a default, so running without a config file provisions
the standard toolset. The file only needs to state what differs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sysinit.core.models.package_manager import PackageManagerKind


class StepOverride(BaseModel):
    """Per-step adjustments."""

    model_config = ConfigDict(extra="forbid")

    required: bool | None = None
    skip: bool = False
    candidates: dict[PackageManagerKind, list[str]] = Field(default_factory=dict)


class SourcesConfig(BaseModel):
    """Third-party sources used when the native packages fall short.

    All are on by default; set one to false to keep a machine on its
    distribution's own repositories.
    """

    model_config = ConfigDict(extra="forbid")

    deadsnakes: bool = True     # Ubuntu PPA when python3.X is not packaged
    aur: bool = True            # build 1Password from the AUR on pacman
    homebrew: bool = True       # install Homebrew on a Mac that lacks it


class SysinitConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra="forbid")

    python_version: str = "3.11"
    log_file: str | None = None
    refresh: bool = True
    upgrade: bool = False
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    steps: dict[str, StepOverride] = Field(default_factory=dict)
    post_provision: list[list[str]] = Field(default_factory=list)

    @field_validator("python_version", mode="before")
    @classmethod
    def _check_python_version(cls, value: object) -> str:
        if not isinstance(value, str):
            # YAML reads an unquoted 3.10 as the float 3.1
            raise ValueError(f"python_version must be a quoted string such as '3.11', got {value!r}")
        text = value.strip()
        parts = text.split(".")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"python_version must look like '3.11', got {text!r}")
        return text

    @field_validator("post_provision")
    @classmethod
    def _check_commands(cls, value: list[list[str]]) -> list[list[str]]:
        for command in value:
            if not command:
                raise ValueError("post_provision commands must not be empty")
        return value
