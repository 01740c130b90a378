"""
Configuration loader — reads rebootwatch.yml into a Settings model.

The file is optional: without one, every setting takes its default.
When a file is present it must be a YAML mapping that validates
against ``Settings``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "rebootwatch.yml"

DEFAULT_REGISTRY_KEY = r"SYSTEM\CurrentControlSet\Control\Session Manager"
DEFAULT_REGISTRY_VALUE = "PendingFileRenameOperations"
DEFAULT_MARKER_PATH = r"WinSxS\pending.xml"


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""


class Settings(BaseModel):
    """Runtime settings for a check run."""

    timeout_seconds: float = Field(default=30.0, gt=0)
    workers: int = Field(default=1, ge=1, le=64)
    enable_fallback: bool = False
    local_aliases: list[str] = Field(default_factory=list)
    powershell: str | None = None

    registry_key: str = DEFAULT_REGISTRY_KEY
    registry_value: str = DEFAULT_REGISTRY_VALUE
    marker_path: str = DEFAULT_MARKER_PATH

    state_dir: str = ".state"
    audit: bool = True
    save_last_run: bool = True


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for rebootwatch.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the config file, or None if not found.
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


def load_settings(path: Path | None = None, search: bool = True) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to the config file. If None, searches upward
            from the cwd (unless ``search`` is False).
        search: Whether to look for a config file when ``path`` is None.

    Returns:
        Validated Settings. Defaults when no file is found.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file() if search else None
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return Settings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may nest everything under a "rebootwatch" key or be flat
    settings_data = data.get("rebootwatch", data)

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
