"""
Systemd adapter — unit enablement.

Units are enabled without ``--now`` so the same call works inside a
chroot during installation.
"""

from __future__ import annotations

import logging

from hwprovision.adapters.base import ServiceManager
from hwprovision.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)


class SystemdServiceManager(ServiceManager):
    """ServiceManager backed by systemctl."""

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "systemd"

    def is_available(self) -> bool:
        return self._runner.available("systemctl")

    def enable(self, name: str) -> bool:
        result = self._runner.run(["systemctl", "enable", name], privileged=True)
        if not result.ok:
            logger.warning("systemctl enable %s failed: %s", name, result.error)
        return result.ok

    def is_enabled(self, name: str) -> bool:
        result = self._runner.run(["systemctl", "is-enabled", name])
        return result.stdout.strip() == "enabled"

    def list_unit_names(self) -> set[str]:
        result = self._runner.run(["systemctl", "list-unit-files", "--no-legend", "--plain"])
        if not result.ok:
            return set()
        return {line.split()[0] for line in result.stdout.splitlines() if line.strip()}
