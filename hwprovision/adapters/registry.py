"""
Adapter registry — one adapter per capability role.

The probe and the reconciler never construct adapters themselves; they
receive a registry and look roles up through its typed accessors.
Swapping the whole registry for mocks is how tests (and ``--mock``)
run the pipeline without touching the host.
"""

from __future__ import annotations

import logging
from typing import Any

from hwprovision.adapters.base import (
    Adapter,
    BootImageBuilder,
    Fetcher,
    FileSystem,
    HardwareInspector,
    PackageManager,
    ServiceManager,
)

logger = logging.getLogger(__name__)

# role -> required adapter type
ROLES: dict[str, type[Adapter]] = {
    "packages": PackageManager,
    "services": ServiceManager,
    "files": FileSystem,
    "hardware": HardwareInspector,
    "boot": BootImageBuilder,
    "fetch": Fetcher,
}


class AdapterRegistry:
    """Registry of capability adapters keyed by role."""

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, role: str, adapter: Adapter) -> None:
        """Register an adapter for a role.

        Raises:
            ValueError: unknown role.
            TypeError: adapter does not implement the role's capability.
        """
        expected = ROLES.get(role)
        if expected is None:
            raise ValueError(f"Unknown adapter role '{role}'. Valid: {', '.join(ROLES)}")
        if not isinstance(adapter, expected):
            raise TypeError(
                f"Adapter {adapter!r} does not implement {expected.__name__} for role '{role}'"
            )
        if role in self._adapters:
            logger.warning("Overwriting existing adapter for role: %s", role)
        self._adapters[role] = adapter
        logger.debug("Registered %s adapter: %s", role, adapter.name)

    def get(self, role: str) -> Adapter | None:
        return self._adapters.get(role)

    def _require(self, role: str) -> Any:
        adapter = self._adapters.get(role)
        if adapter is None:
            raise LookupError(f"No adapter registered for role '{role}'")
        return adapter

    # ── Typed accessors ─────────────────────────────────────────

    @property
    def packages(self) -> PackageManager:
        return self._require("packages")

    @property
    def services(self) -> ServiceManager:
        return self._require("services")

    @property
    def files(self) -> FileSystem:
        return self._require("files")

    @property
    def hardware(self) -> HardwareInspector:
        return self._require("hardware")

    @property
    def boot(self) -> BootImageBuilder:
        return self._require("boot")

    @property
    def fetch(self) -> Fetcher:
        return self._require("fetch")

    def list_roles(self) -> list[str]:
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter."""
        status = {}
        for role, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[role] = {
                "name": adapter.name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def build_system_registry(
    root: str = "/",
    use_sudo: bool = True,
    timeout: int = 600,
    pacman_conf: str = "/etc/pacman.conf",
) -> AdapterRegistry:
    """Registry of real adapters for an Arch Linux host.

    With a ``root`` other than ``/``, files are edited under that prefix
    and pacman, systemctl and mkinitcpio run inside it via arch-chroot.
    Hardware is always read from the running host.
    """
    from hwprovision.adapters.shell.command import CommandRunner
    from hwprovision.adapters.shell.filesystem import LocalFileSystem
    from hwprovision.adapters.system.http import UrllibFetcher
    from hwprovision.adapters.system.mkinitcpio import MkinitcpioBootImageBuilder
    from hwprovision.adapters.system.pacman import PacmanPackageManager
    from hwprovision.adapters.system.sysfs import SysfsHardwareInspector
    from hwprovision.adapters.system.systemd import SystemdServiceManager

    runner = CommandRunner(use_sudo=use_sudo, timeout=timeout)
    target = CommandRunner(use_sudo=use_sudo, timeout=timeout, chroot=root)
    files = LocalFileSystem(root=root, runner=runner)
    fetcher = UrllibFetcher()

    registry = AdapterRegistry()
    registry.register("files", files)
    registry.register("fetch", fetcher)
    registry.register(
        "packages",
        PacmanPackageManager(target, files, fetcher=fetcher, pacman_conf=pacman_conf),
    )
    registry.register("services", SystemdServiceManager(target))
    registry.register("hardware", SysfsHardwareInspector(runner))
    registry.register("boot", MkinitcpioBootImageBuilder(target))
    return registry


def build_mock_registry(**overrides: Adapter) -> AdapterRegistry:
    """Registry of in-memory mocks; pass ``role=adapter`` to override."""
    from hwprovision.adapters.mock import (
        MockBootImageBuilder,
        MockFetcher,
        MockFileSystem,
        MockHardwareInspector,
        MockPackageManager,
        MockServiceManager,
    )

    defaults: dict[str, Adapter] = {
        "packages": MockPackageManager(),
        "services": MockServiceManager(),
        "files": MockFileSystem(),
        "hardware": MockHardwareInspector(),
        "boot": MockBootImageBuilder(),
        "fetch": MockFetcher(),
    }
    defaults.update(overrides)

    registry = AdapterRegistry(mock_mode=True)
    for role, adapter in defaults.items():
        registry.register(role, adapter)
    return registry
