"""
Mkinitcpio adapter — regenerate every initramfs preset.
"""

from __future__ import annotations

import logging

from hwprovision.adapters.base import BootImageBuilder
from hwprovision.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)


class MkinitcpioBootImageBuilder(BootImageBuilder):
    """BootImageBuilder backed by ``mkinitcpio -P``."""

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "mkinitcpio"

    def is_available(self) -> bool:
        return self._runner.available("mkinitcpio")

    def regenerate(self) -> bool:
        logger.info("Regenerating initramfs...")
        result = self._runner.run(["mkinitcpio", "-P"], privileged=True)
        if not result.ok:
            logger.error("mkinitcpio -P failed: %s", result.error)
        return result.ok
