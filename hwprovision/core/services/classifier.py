"""
Classifier — map probe facts to hardware categories.

GPU generation comes from an ordered table of pattern groups. Groups
are checked in priority order (most modern first) against every
descriptor, so the first group any descriptor matches wins no matter
where that descriptor sits in the input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from hwprovision.core.models.hardware import (
    GpuGeneration,
    HardwareClass,
    HardwareFacts,
    VendorClass,
)
from hwprovision.core.services.catalog import ASUS_VENDOR_TOKEN, TURING_GTX16_FAMILY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GpuPatternGroup:
    """One row of the GPU classification table."""

    generation: GpuGeneration
    family: str
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, descriptor: str) -> bool:
        return any(p.search(descriptor) for p in self.patterns)


def _group(generation: GpuGeneration, family: str, *patterns: str) -> GpuPatternGroup:
    return GpuPatternGroup(
        generation=generation,
        family=family,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
    )


# Priority order matters: first match wins.
GPU_PATTERN_GROUPS: tuple[GpuPatternGroup, ...] = (
    _group(GpuGeneration.MODERN, "Turing/Ampere/Ada", r"RTX [2-9][0-9]"),
    _group(GpuGeneration.LEGACY, TURING_GTX16_FAMILY, r"GTX 16[0-9]{2}"),
    _group(
        GpuGeneration.LEGACY,
        "Pascal/Maxwell",
        r"GTX 9", r"GTX 10", r"Quadro P", r"MX1", r"MX2", r"MX3",
    ),
)

_YEAR_RE = re.compile(r"(?<!\d)(20\d{2})(?!\d)")


def match_vendor(vendor_string: str, token: str = ASUS_VENDOR_TOKEN) -> VendorClass:
    """Case-insensitive substring test of the vendor token."""
    if token.lower() in (vendor_string or "").lower():
        return VendorClass.ASUS
    return VendorClass.NO_VENDOR_MATCH


def classify_gpu(
    descriptors: Iterable[str],
    groups: tuple[GpuPatternGroup, ...] = GPU_PATTERN_GROUPS,
) -> tuple[GpuGeneration, str | None, str | None]:
    """Classify GPU descriptors.

    Returns:
        (generation, family label, matched descriptor). Always one of the
        defined generations: NONE for no descriptors, UNKNOWN when no
        group matches.
    """
    items = [d for d in descriptors if d and d.strip()]
    if not items:
        return GpuGeneration.NONE, None, None

    for group in groups:
        for descriptor in items:
            if group.matches(descriptor):
                return group.generation, group.family, descriptor

    return GpuGeneration.UNKNOWN, None, None


def extract_product_year(product_name: str) -> int | None:
    """First standalone 20xx token in the product name, if any."""
    m = _YEAR_RE.search(product_name or "")
    return int(m.group(1)) if m else None


def classify(facts: HardwareFacts) -> HardwareClass:
    """Derive the hardware class of a facts snapshot."""
    vendor = match_vendor(facts.vendor_string)
    generation, family, descriptor = classify_gpu(facts.gpu_descriptors)
    year = extract_product_year(facts.product_name)

    hw = HardwareClass(
        vendor=vendor,
        gpu=generation,
        gpu_family=family,
        matched_descriptor=descriptor,
        product_year=year,
        kernels=facts.installed_kernels,
    )
    logger.debug(
        "Classified host: vendor=%s gpu=%s family=%s year=%s",
        hw.vendor.value, hw.gpu.value, hw.gpu_family, hw.product_year,
    )
    return hw
