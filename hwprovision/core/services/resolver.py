"""
Config resolvers — one per configuration domain.

A resolver is a pure function of (hardware class, installed packages)
to a DesiredState, or a Skip explaining why the domain contributes
nothing. Resolvers never touch the host.

The vendor domain depends on the generic domain's outcome: it only
emits power-management artifacts when a driver is installed or about
to be, so ``resolve_domains`` feeds the generic packages forward.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Set

from hwprovision.core.models.hardware import GpuGeneration, HardwareClass
from hwprovision.core.models.state import (
    ConfigDomain,
    DesiredState,
    OutcomeKind,
    Skip,
)
from hwprovision.core.services import catalog

logger = logging.getLogger(__name__)


def kernel_headers_package(kernels: Iterable[str]) -> str:
    """Headers package for the first supported installed kernel."""
    installed = set(kernels)
    for kernel in catalog.SUPPORTED_KERNELS:
        if kernel in installed:
            return f"{kernel}-headers"
    return f"{catalog.DEFAULT_KERNEL}-headers"


def render_module_options(lines: Iterable[str]) -> str:
    """Render option lines as a modprobe.d file body."""
    return "".join(f"{line}\n" for line in lines)


class ConfigResolver(ABC):
    """Base class for domain resolvers."""

    domain: ConfigDomain

    @abstractmethod
    def resolve(self, hw: HardwareClass, installed: Set[str]) -> DesiredState | Skip:
        """Compute this domain's desired state."""

    def _skip(self, kind: OutcomeKind, reason: str) -> Skip:
        logger.info("%s: skipped (%s) — %s", self.domain.value, kind.value, reason)
        return Skip(domain=self.domain, kind=kind, reason=reason)


class GenericDriverResolver(ConfigResolver):
    """NVIDIA driver selection, early KMS, and session environment."""

    domain = ConfigDomain.GENERIC_DRIVER

    def __init__(self, session_env_file: str = catalog.DEFAULT_SESSION_ENV_FILE):
        self.session_env_file = session_env_file

    def resolve(self, hw: HardwareClass, installed: Set[str]) -> DesiredState | Skip:
        if hw.gpu is GpuGeneration.NONE:
            return self._skip(OutcomeKind.DETECTION_ABSENT, "No NVIDIA GPU detected")
        if hw.gpu is GpuGeneration.UNKNOWN:
            return self._skip(
                OutcomeKind.UNSUPPORTED_HARDWARE,
                f"No compatible driver found for your NVIDIA GPU. See: {catalog.NVIDIA_WIKI_URL}",
            )

        if hw.gpu is GpuGeneration.MODERN:
            driver = catalog.MODERN_DRIVER_PACKAGES
        else:
            driver = catalog.LEGACY_DRIVER_PACKAGES

        packages = set(driver) | set(catalog.WAYLAND_SUPPORT_PACKAGES)
        packages.add(kernel_headers_package(hw.kernels))

        options = list(catalog.GENERIC_MODULE_OPTIONS)
        state = DesiredState(
            packages=packages,
            module_options=options,
            files_to_write={
                catalog.GENERIC_MODPROBE_PATH: render_module_options(options),
                catalog.INITRAMFS_MODULES_PATH: catalog.INITRAMFS_MODULES_CONTENT,
            },
            file_appends={self.session_env_file: catalog.SESSION_ENV_BLOCK},
        )
        logger.info(
            "%s: %s GPU (%s) → %d packages",
            self.domain.value, hw.gpu.value, hw.gpu_family, len(packages),
        )
        return state


class VendorSpecificResolver(ConfigResolver):
    """ASUS laptop tooling and NVIDIA power management."""

    domain = ConfigDomain.VENDOR_SPECIFIC

    def resolve(self, hw: HardwareClass, installed: Set[str]) -> DesiredState | Skip:
        if not hw.vendor_matched:
            return self._skip(
                OutcomeKind.DETECTION_ABSENT,
                "No ASUS hardware detected, skipping ASUS-specific configuration",
            )

        state = DesiredState(
            packages=set(catalog.ASUS_PACKAGES),
            repositories_required={catalog.G14_REPOSITORY},
        )

        if installed & catalog.DRIVER_MARKER_PACKAGES:
            self._power_management(hw, state)
        else:
            logger.info(
                "%s: no NVIDIA driver installed, skipping power management",
                self.domain.value,
            )

        if hw.product_year is not None and hw.product_year >= catalog.G14_KERNEL_MIN_YEAR:
            state.advisories.append(
                f"Your ASUS laptop is from {hw.product_year}; newer models may benefit "
                "from the linux-g14 kernel (pacman -S linux-g14 linux-g14-headers), "
                "then regenerate the boot configuration."
            )
        return state

    def _power_management(self, hw: HardwareClass, state: DesiredState) -> None:
        state.services_to_enable |= catalog.NVIDIA_PM_SERVICES
        state.services_if_present |= catalog.NVIDIA_OPTIONAL_PM_SERVICES

        if hw.gpu_family == catalog.TURING_GTX16_FAMILY:
            # Replaces the generic block outright; options are not merged.
            state.module_options = [
                line for line in catalog.ASUS_TURING_MODPROBE_CONTENT.splitlines()
                if line.startswith("options ")
            ]
            state.files_to_write[catalog.ASUS_MODPROBE_PATH] = (
                catalog.ASUS_TURING_MODPROBE_CONTENT
            )
            state.supersedes[catalog.ASUS_MODPROBE_PATH] = {catalog.GENERIC_MODPROBE_PATH}
            state.downloads[catalog.NVIDIA_PM_UDEV_RULES_PATH] = (
                catalog.NVIDIA_PM_UDEV_RULES_URL
            )
        elif hw.gpu is GpuGeneration.MODERN:
            state.advisories.append(
                "For optimal power management on Ampere/Ada GPUs, consider "
                "nvidia-laptop-power-cfg from the AUR (yay -S nvidia-laptop-power-cfg)."
            )


def resolve_domains(
    hw: HardwareClass,
    installed: Set[str],
    generic: GenericDriverResolver | None = None,
    vendor: VendorSpecificResolver | None = None,
) -> list[tuple[ConfigDomain, DesiredState | Skip]]:
    """Resolve both domains, vendor-specific first.

    The vendor domain sees the host's installed packages plus whatever
    the generic domain is about to install.
    """
    generic = generic or GenericDriverResolver()
    vendor = vendor or VendorSpecificResolver()

    generic_outcome = generic.resolve(hw, installed)
    effective = set(installed)
    if isinstance(generic_outcome, DesiredState):
        effective |= generic_outcome.packages

    vendor_outcome = vendor.resolve(hw, effective)
    return [
        (vendor.domain, vendor_outcome),
        (generic.domain, generic_outcome),
    ]
