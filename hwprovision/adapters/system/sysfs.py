"""
Sysfs adapter — DMI fields and PCI devices.

DMI is read from /sys/class/dmi/id, which stays readable inside a
chroot. PCI devices come from ``lspci``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hwprovision.adapters.base import HardwareInspector
from hwprovision.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)

DMI_DIR = "/sys/class/dmi/id"


class SysfsHardwareInspector(HardwareInspector):
    """HardwareInspector backed by sysfs and lspci."""

    def __init__(self, runner: CommandRunner, dmi_dir: str = DMI_DIR):
        self._runner = runner
        self._dmi_dir = Path(dmi_dir)

    @property
    def name(self) -> str:
        return "sysfs"

    def is_available(self) -> bool:
        return self._dmi_dir.is_dir()

    def read_dmi_field(self, name: str) -> str | None:
        try:
            return (self._dmi_dir / name).read_text(encoding="utf-8").strip()
        except OSError:
            return None

    def list_pci_devices(self) -> list[str]:
        result = self._runner.run(["lspci"], timeout=10)
        if not result.ok:
            logger.debug("lspci unavailable: %s", result.error)
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]
