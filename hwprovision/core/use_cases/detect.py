"""
Detection use case — probe the host and classify it.

Ties together settings, the adapter registry and the probe. Facts can
come from a YAML/JSON file instead of the host, which lets ``plan`` run
offline for any machine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from hwprovision.adapters.registry import (
    AdapterRegistry,
    build_mock_registry,
    build_system_registry,
)
from hwprovision.core.config.loader import ConfigError, Settings, load_settings
from hwprovision.core.models.hardware import HardwareClass, HardwareFacts
from hwprovision.core.services.classifier import classify
from hwprovision.core.services.probe import load_facts_file, probe

logger = logging.getLogger(__name__)


@dataclass
class DetectResult:
    """Result of the detect use case."""

    facts: HardwareFacts | None = None
    hardware: HardwareClass | None = None
    settings: Settings | None = None
    registry: AdapterRegistry | None = None
    source: str = "probe"          # "probe" or the facts file path
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["source"] = self.source
        if self.facts:
            facts = self.facts.model_dump(mode="json")
            facts["installed_driver_packages"] = sorted(self.facts.installed_driver_packages)
            result["facts"] = facts
        if self.hardware:
            result["classification"] = self.hardware.model_dump(mode="json")
        return result


def registry_for(settings: Settings, mock_mode: bool = False) -> AdapterRegistry:
    """Build the adapter registry a run should use."""
    if mock_mode:
        return build_mock_registry()
    return build_system_registry(
        root=settings.root,
        use_sudo=settings.use_sudo,
        timeout=settings.command_timeout,
        pacman_conf=settings.pacman_conf,
    )


def run_detect(
    config_path: Path | None = None,
    facts_file: Path | None = None,
    registry: AdapterRegistry | None = None,
    mock_mode: bool = False,
) -> DetectResult:
    """Take the facts snapshot and classify it.

    Args:
        config_path: Optional explicit path to hwprovision.yml.
        facts_file: Load facts from this file instead of probing.
        registry: Optional pre-configured adapter registry.
        mock_mode: Use in-memory adapters instead of the host.

    Returns:
        DetectResult; ``error`` is set for configuration problems.
    """
    result = DetectResult()

    try:
        result.settings = load_settings(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.registry = registry or registry_for(result.settings, mock_mode)

    if facts_file is not None:
        try:
            result.facts = load_facts_file(facts_file)
        except ConfigError as e:
            result.error = str(e)
            return result
        result.source = str(facts_file)
        logger.info("Loaded facts from %s", facts_file)
    else:
        result.facts = probe(result.registry.hardware, result.registry.packages)

    result.hardware = classify(result.facts)
    return result
