"""
Hardware probe — take the facts snapshot.

Read-only: DMI vendor/product, NVIDIA PCI descriptors, and the
installed driver and kernel packages. The probe is the only code that
reads host identification; everything downstream works on the
immutable HardwareFacts it returns.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml

from hwprovision.adapters.base import HardwareInspector, PackageManager
from hwprovision.core.config.loader import ConfigError
from hwprovision.core.models.hardware import HardwareFacts
from hwprovision.core.services import catalog

logger = logging.getLogger(__name__)

# Packages reported as "installed driver packages".
DRIVER_PACKAGES: frozenset[str] = (
    catalog.MODERN_DRIVER_PACKAGES
    | catalog.LEGACY_DRIVER_PACKAGES
    | catalog.DRIVER_MARKER_PACKAGES
)


def nvidia_descriptors(pci_devices: list[str]) -> tuple[str, ...]:
    """PCI descriptor lines that mention NVIDIA."""
    return tuple(line for line in pci_devices if "nvidia" in line.lower())


def probe(hardware: HardwareInspector, packages: PackageManager) -> HardwareFacts:
    """Snapshot the host's identification facts."""
    vendor = hardware.read_dmi_field("sys_vendor") or ""
    product = hardware.read_dmi_field("product_name") or ""
    gpus = nvidia_descriptors(hardware.list_pci_devices())

    installed_drivers = packages.list_installed(DRIVER_PACKAGES)
    installed_kernels = packages.list_installed(catalog.SUPPORTED_KERNELS)

    facts = HardwareFacts(
        vendor_string=vendor,
        product_name=product,
        gpu_descriptors=gpus,
        installed_driver_packages=frozenset(installed_drivers),
        installed_kernels=tuple(k for k in catalog.SUPPORTED_KERNELS if k in installed_kernels),
    )
    logger.info(
        "Probed host: vendor=%r product=%r gpus=%d drivers=%s",
        vendor, product, len(gpus), sorted(installed_drivers),
    )
    return facts


def load_facts_file(path: Path) -> HardwareFacts:
    """Load a facts snapshot from YAML or JSON (for offline planning).

    Accepted keys mirror HardwareFacts; ``vendor``, ``product`` and
    ``gpus`` are accepted as short aliases.

    Raises:
        ConfigError: unreadable or invalid file.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read facts file {path}: {e}") from e

    try:
        if path.suffix == ".json":
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid facts file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    aliases = {"vendor": "vendor_string", "product": "product_name", "gpus": "gpu_descriptors"}
    normalized = {aliases.get(k, k): v for k, v in data.items()}

    try:
        return HardwareFacts.model_validate(normalized)
    except Exception as e:
        raise ConfigError(f"Invalid facts in {path}: {e}") from e
