"""
Configuration loader — reads hwprovision.yml into Settings.

The configuration file is optional: a host with no file gets the
defaults. When a file is found it must be a valid YAML mapping whose
keys validate against the Settings schema.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from hwprovision.core.services.catalog import DEFAULT_SESSION_ENV_FILE

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "hwprovision.yml"
CONFIG_ENV_VAR = "HWPROVISION_CONFIG"
SYSTEM_CONFIG_PATH = Path("/etc/hwprovision") / CONFIG_FILE


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""


class Settings(BaseModel):
    """Runtime settings for a provisioning run."""

    model_config = ConfigDict(extra="forbid")

    root: str = "/"                       # filesystem prefix (chroot, scratch tree)
    use_sudo: bool = True
    session_env_file: str = DEFAULT_SESSION_ENV_FILE
    pacman_conf: str = "/etc/pacman.conf"
    audit_log: str | None = None          # NDJSON ledger of apply runs
    command_timeout: int = Field(default=600, gt=0)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate the configuration file.

    Order: ``$HWPROVISION_CONFIG``, ``./hwprovision.yml``,
    ``/etc/hwprovision/hwprovision.yml``.

    Returns:
        Path to the file, or None if there is none.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    local = (start_dir or Path.cwd()) / CONFIG_FILE
    if local.is_file():
        return local

    if SYSTEM_CONFIG_PATH.is_file():
        return SYSTEM_CONFIG_PATH

    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, searches the default
            locations and falls back to defaults when nothing is found.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    if path is None:
        path = find_config_file()
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
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info("Loaded settings from %s (root=%s)", path, settings.root)
    return settings
