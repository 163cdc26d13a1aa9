"""Adapters — capability bindings for host interaction.

Public re-exports for convenient access.
"""

from hwprovision.adapters.base import (
    Adapter,
    BootImageBuilder,
    Fetcher,
    FileSystem,
    HardwareInspector,
    PackageManager,
    ServiceManager,
)
from hwprovision.adapters.registry import (
    AdapterRegistry,
    build_mock_registry,
    build_system_registry,
)

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "BootImageBuilder",
    "Fetcher",
    "FileSystem",
    "HardwareInspector",
    "PackageManager",
    "ServiceManager",
    "build_mock_registry",
    "build_system_registry",
]
