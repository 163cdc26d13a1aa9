"""
Hardware models — probe facts and derived classification.

HardwareFacts is the immutable snapshot the probe takes once per run.
HardwareClass is what the classifier derives from it. Neither is
persisted; both are recomputed on every invocation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VendorClass(str, Enum):
    """Laptop vendor category."""

    NO_VENDOR_MATCH = "no_vendor_match"
    ASUS = "asus"


class GpuGeneration(str, Enum):
    """GPU generation category.

    NONE means no GPU descriptors were found at all. UNKNOWN means
    descriptors exist but no pattern group matched them.
    """

    NONE = "none"
    LEGACY = "legacy"
    MODERN = "modern"
    UNKNOWN = "unknown"


class HardwareFacts(BaseModel):
    """Immutable snapshot of host identification facts."""

    model_config = ConfigDict(frozen=True)

    vendor_string: str = ""
    product_name: str = ""
    gpu_descriptors: tuple[str, ...] = ()
    installed_driver_packages: frozenset[str] = frozenset()
    installed_kernels: tuple[str, ...] = ()


class HardwareClass(BaseModel):
    """Classification of a HardwareFacts snapshot."""

    model_config = ConfigDict(frozen=True)

    vendor: VendorClass = VendorClass.NO_VENDOR_MATCH
    gpu: GpuGeneration = GpuGeneration.NONE
    gpu_family: str | None = None           # label of the matched pattern group
    matched_descriptor: str | None = None   # descriptor that decided the group
    product_year: int | None = None
    kernels: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def vendor_matched(self) -> bool:
        return self.vendor is not VendorClass.NO_VENDOR_MATCH

    @property
    def gpu_supported(self) -> bool:
        """Whether the GPU maps to a known driver branch."""
        return self.gpu in (GpuGeneration.LEGACY, GpuGeneration.MODERN)
