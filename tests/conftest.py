"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from hwprovision.adapters.mock import (
    MockBootImageBuilder,
    MockFetcher,
    MockFileSystem,
    MockHardwareInspector,
    MockPackageManager,
    MockServiceManager,
)
from hwprovision.adapters.registry import AdapterRegistry, build_mock_registry
from hwprovision.core.models.hardware import HardwareFacts

ASUS_VENDOR = "ASUSTeK COMPUTER INC."
SESSION_ENV = "/home/user/.config/hypr/envs.conf"

GTX_1650 = "01:00.0 VGA compatible controller: NVIDIA Corporation TU117M [GeForce GTX 1650 Mobile / Max-Q] (rev a1)"
RTX_4060 = "01:00.0 VGA compatible controller: NVIDIA Corporation AD107M [GeForce RTX 4060 Max-Q / Mobile] (rev a1)"
GTX_1060 = "01:00.0 VGA compatible controller: NVIDIA Corporation GP106M [GeForce GTX 1060 Mobile] (rev a1)"
INTEL_IGPU = "00:02.0 VGA compatible controller: Intel Corporation Alder Lake-P GT2 [Iris Xe Graphics] (rev 0c)"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep host config and log settings out of every test."""
    for var in ("HWPROVISION_CONFIG", "HWP_LOG_LEVEL", "HWP_LOG_FILE", "HWP_LOG_FILE_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "hwprovision.core.config.loader.SYSTEM_CONFIG_PATH",
        tmp_path / "no-system-config" / "hwprovision.yml",
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


def make_facts(
    vendor: str = "",
    product: str = "",
    gpus: tuple[str, ...] = (),
    drivers: frozenset[str] = frozenset(),
    kernels: tuple[str, ...] = ("linux",),
) -> HardwareFacts:
    return HardwareFacts(
        vendor_string=vendor,
        product_name=product,
        gpu_descriptors=gpus,
        installed_driver_packages=drivers,
        installed_kernels=kernels,
    )


@pytest.fixture
def host_files() -> MockFileSystem:
    """A host with an existing session config."""
    return MockFileSystem(files={SESSION_ENV: "# hyprland envs\n"})


@pytest.fixture
def registry(host_files: MockFileSystem) -> AdapterRegistry:
    """Mock registry with an empty package database and no services."""
    return build_mock_registry(
        packages=MockPackageManager(installed={"linux"}),
        services=MockServiceManager(),
        files=host_files,
        hardware=MockHardwareInspector(),
        boot=MockBootImageBuilder(),
        fetch=MockFetcher(),
    )
