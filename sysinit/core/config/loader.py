"""
Configuration loader — reads sysinit.yml into the config model.

The file is optional. Without one every default applies; with one it
is read as YAML, validated against the Pydantic schema, and returned as
a typed ``SysinitConfig``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from sysinit.core.data.steps import STEP_NAMES
from sysinit.core.models.config import SysinitConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "sysinit.yml"


class ConfigError(Exception):
    """Raised when sysinit configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for sysinit.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to sysinit.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> SysinitConfig:
    """Load and validate sysinit configuration.

    Args:
        path: Explicit path to sysinit.yml. If None, searches upward
            and falls back to defaults when nothing is found.

    Returns:
        Validated SysinitConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return SysinitConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    # An empty file means "all defaults"
    if data is None:
        return SysinitConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = SysinitConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    unknown = sorted(set(config.steps) - set(STEP_NAMES))
    if unknown:
        raise ConfigError(
            f"Unknown step(s) in {path}: {', '.join(unknown)} "
            f"(known: {', '.join(STEP_NAMES)})"
        )

    logger.debug(
        "Loaded config: python %s, %d step override(s), %d post-provision command(s)",
        config.python_version,
        len(config.steps),
        len(config.post_provision),
    )
    return config
