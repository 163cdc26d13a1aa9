"""
Config check use case — validate hwprovision.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hwprovision.core.config.loader import ConfigError, Settings, find_config_file, load_settings


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    settings: Settings | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "settings": self.settings.model_dump() if self.settings else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate settings and flag paths that will not work on this host.

    A missing file is valid (defaults apply) but noted as a warning.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path

    try:
        result.settings = load_settings(config_path) if config_path else Settings()
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    settings = result.settings
    if config_path is None:
        result.warnings.append("No hwprovision.yml found; using defaults.")

    root = Path(settings.root)
    if not root.is_dir():
        result.errors.append(f"Root directory does not exist: {settings.root}")

    pacman_conf = root / settings.pacman_conf.lstrip("/")
    if not pacman_conf.is_file():
        result.warnings.append(f"pacman configuration not found: {pacman_conf}")

    session_env = Path(settings.session_env_file).expanduser()
    if not session_env.is_file():
        result.warnings.append(
            f"Session config {session_env} does not exist; "
            "the environment block will be skipped."
        )

    if settings.audit_log:
        parent = Path(settings.audit_log).parent
        if parent.exists() and not parent.is_dir():
            result.errors.append(f"Audit log parent is not a directory: {parent}")

    result.valid = len(result.errors) == 0
    return result
