"""
Mock adapters — in-memory test doubles for every capability.

Used in tests and in ``--mock`` mode to exercise the full pipeline
without touching the host. Each mock records its mutating calls so
tests can assert on exactly what the reconciler did.
"""

from __future__ import annotations

from collections.abc import Iterable

from hwprovision.adapters.base import (
    BootImageBuilder,
    Fetcher,
    FileSystem,
    HardwareInspector,
    PackageManager,
    ServiceManager,
)
from hwprovision.core.models.state import RepositoryDescriptor


class MockPackageManager(PackageManager):
    """In-memory package database.

    Packages listed in ``unavailable`` fail to install.
    """

    def __init__(
        self,
        installed: Iterable[str] = (),
        repositories: Iterable[str] = (),
        keys: Iterable[str] = (),
        unavailable: Iterable[str] = (),
        key_import_fails: bool = False,
    ):
        self.installed = set(installed)
        self.repositories = set(repositories)
        self.keys = set(keys)
        self.unavailable = set(unavailable)
        self.key_import_fails = key_import_fails
        self.install_calls: list[list[str]] = []
        self.refresh_count = 0

    @property
    def name(self) -> str:
        return "mock-packages"

    def is_installed(self, name: str) -> bool:
        return name in self.installed

    def list_installed(self, names: Iterable[str]) -> set[str]:
        return set(names) & self.installed

    def install(self, names: list[str]) -> dict[str, bool]:
        self.install_calls.append(list(names))
        results = {}
        for n in names:
            ok = n not in self.unavailable
            if ok:
                self.installed.add(n)
            results[n] = ok
        return results

    def has_repository(self, name: str) -> bool:
        return name in self.repositories

    def add_repository(self, repo: RepositoryDescriptor) -> bool:
        self.repositories.add(repo.name)
        return True

    def has_trust_key(self, key_id: str) -> bool:
        return key_id in self.keys

    def import_trust_key(self, key_id: str, key_url: str = "") -> bool:
        if self.key_import_fails:
            return False
        self.keys.add(key_id)
        return True

    def refresh(self) -> bool:
        self.refresh_count += 1
        return True


class MockServiceManager(ServiceManager):
    """In-memory unit registry. Every enabled unit is also a known unit."""

    def __init__(
        self,
        units: Iterable[str] = (),
        enabled: Iterable[str] = (),
        failing: Iterable[str] = (),
    ):
        self.enabled = set(enabled)
        self.units = set(units) | self.enabled
        self.failing = set(failing)
        self.enable_calls: list[str] = []

    @property
    def name(self) -> str:
        return "mock-services"

    def enable(self, name: str) -> bool:
        self.enable_calls.append(name)
        if name in self.failing:
            return False
        self.enabled.add(name)
        self.units.add(name)
        return True

    def is_enabled(self, name: str) -> bool:
        return name in self.enabled

    def list_unit_names(self) -> set[str]:
        return set(self.units)


class MockFileSystem(FileSystem):
    """In-memory file tree keyed by host path.

    Paths listed in ``read_only`` raise OSError on any mutation.
    """

    def __init__(self, files: dict[str, str] | None = None, read_only: Iterable[str] = ()):
        self.files: dict[str, str] = dict(files or {})
        self.read_only = set(read_only)
        self.writes: list[str] = []
        self.appends: list[str] = []
        self.removals: list[str] = []

    @property
    def name(self) -> str:
        return "mock-filesystem"

    def read_file(self, path: str) -> str | None:
        return self.files.get(path)

    def write_file(self, path: str, content: str) -> None:
        self._check(path)
        self.writes.append(path)
        self.files[path] = content

    def append_file(self, path: str, content: str) -> None:
        self._check(path)
        self.appends.append(path)
        self.files[path] = self.files.get(path, "") + content

    def remove(self, path: str) -> None:
        self._check(path)
        self.removals.append(path)
        self.files.pop(path, None)

    def _check(self, path: str) -> None:
        if path in self.read_only:
            raise OSError(f"Permission denied: {path}")


class MockHardwareInspector(HardwareInspector):
    """Fixed DMI fields and PCI devices."""

    def __init__(self, dmi: dict[str, str] | None = None, pci: Iterable[str] = ()):
        self.dmi = dict(dmi or {})
        self.pci = list(pci)

    @property
    def name(self) -> str:
        return "mock-hardware"

    def read_dmi_field(self, name: str) -> str | None:
        return self.dmi.get(name)

    def list_pci_devices(self) -> list[str]:
        return list(self.pci)


class MockBootImageBuilder(BootImageBuilder):
    """Counts regenerations."""

    def __init__(self, succeeds: bool = True):
        self.succeeds = succeeds
        self.regenerate_count = 0

    @property
    def name(self) -> str:
        return "mock-boot"

    def regenerate(self) -> bool:
        self.regenerate_count += 1
        return self.succeeds


class MockFetcher(Fetcher):
    """Serves canned responses; unknown URLs raise OSError."""

    def __init__(self, responses: dict[str, str] | None = None, default: str | None = "# mock\n"):
        self.responses = dict(responses or {})
        self.default = default
        self.fetched: list[str] = []

    @property
    def name(self) -> str:
        return "mock-http"

    def fetch(self, url: str) -> str:
        self.fetched.append(url)
        if url in self.responses:
            return self.responses[url]
        if self.default is None:
            raise OSError(f"Could not fetch {url}")
        return self.default
