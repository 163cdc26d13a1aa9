"""
Adapter base — the capability contracts between the core and the host.

The classifier and resolvers never touch the host. Only the probe
(read-only) and the reconciler call into these interfaces, and they
only ever see these abstract types, never a concrete tool.

Failure convention: query methods return plain values (``None`` for
"absent"); mutating methods return ``bool`` for success, and may raise
``OSError`` for filesystem problems. The reconciler captures both in
per-action results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from hwprovision.core.models.state import RepositoryDescriptor


class Adapter(ABC):
    """Common base for all capability adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'pacman', 'systemd', 'sysfs')."""

    def is_available(self) -> bool:
        """Check if the underlying tool is present. Fast, never raises."""
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageManager(Adapter):
    """Package database, repositories, and trust keys."""

    @abstractmethod
    def is_installed(self, name: str) -> bool:
        """Whether a package is installed."""

    @abstractmethod
    def list_installed(self, names: Iterable[str]) -> set[str]:
        """Subset of ``names`` that is installed."""

    @abstractmethod
    def install(self, names: list[str]) -> dict[str, bool]:
        """Install packages; return per-name success."""

    @abstractmethod
    def has_repository(self, name: str) -> bool:
        """Whether a repository section is configured."""

    @abstractmethod
    def add_repository(self, repo: RepositoryDescriptor) -> bool:
        """Add a repository section."""

    @abstractmethod
    def has_trust_key(self, key_id: str) -> bool:
        """Whether a signing key is in the keyring."""

    @abstractmethod
    def import_trust_key(self, key_id: str, key_url: str = "") -> bool:
        """Receive and locally sign a key, falling back to ``key_url``."""

    @abstractmethod
    def refresh(self) -> bool:
        """Refresh the package database."""


class ServiceManager(Adapter):
    """Service registry."""

    @abstractmethod
    def enable(self, name: str) -> bool:
        """Enable a unit."""

    @abstractmethod
    def is_enabled(self, name: str) -> bool:
        """Whether a unit is enabled."""

    @abstractmethod
    def list_unit_names(self) -> set[str]:
        """All installed unit file names."""


class FileSystem(Adapter):
    """Host files, addressed by absolute host paths."""

    @abstractmethod
    def read_file(self, path: str) -> str | None:
        """File content, or None if absent."""

    @abstractmethod
    def write_file(self, path: str, content: str) -> None:
        """Create or replace a file, creating parent directories."""

    @abstractmethod
    def append_file(self, path: str, content: str) -> None:
        """Append to an existing file."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Remove a file; absent files are not an error."""

    def exists(self, path: str) -> bool:
        return self.read_file(path) is not None


class HardwareInspector(Adapter):
    """Read-only hardware identification."""

    @abstractmethod
    def read_dmi_field(self, name: str) -> str | None:
        """A DMI field such as 'sys_vendor', or None if unreadable."""

    @abstractmethod
    def list_pci_devices(self) -> list[str]:
        """One descriptor string per PCI device."""


class BootImageBuilder(Adapter):
    """Boot image (initramfs) regeneration."""

    @abstractmethod
    def regenerate(self) -> bool:
        """Rebuild all boot images."""


class Fetcher(Adapter):
    """Remote content retrieval."""

    @abstractmethod
    def fetch(self, url: str) -> str:
        """Download a text resource. Raises OSError on failure."""
