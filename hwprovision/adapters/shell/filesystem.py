"""
Filesystem adapter — host file operations under a root prefix.

Paths are host-absolute ("/etc/modprobe.d/nvidia.conf") and resolved
under ``root`` so the same plan can target a chroot or a scratch tree.
Paths under the invoking user's home (``~``) are expanded, not rooted.

Writes into system locations need root. When the process is not root
and sudo is enabled, content is piped through ``sudo tee``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from hwprovision.adapters.base import FileSystem
from hwprovision.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """Read and write files on the local host."""

    def __init__(self, root: str = "/", runner: CommandRunner | None = None):
        self._root = Path(root)
        self._runner = runner

    @property
    def name(self) -> str:
        return "filesystem"

    def resolve(self, path: str) -> Path:
        """Map a host path to the real path under the root prefix."""
        if path.startswith("~"):
            return Path(path).expanduser()
        return self._root / path.lstrip("/")

    def read_file(self, path: str) -> str | None:
        target = self.resolve(path)
        if not target.is_file():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot read %s: %s", target, e)
            return None

    def write_file(self, path: str, content: str) -> None:
        target = self.resolve(path)
        if self._needs_privilege(target):
            self._privileged(["mkdir", "-p", str(target.parent)])
            self._privileged(["tee", str(target)], content)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        logger.debug("Wrote %d bytes to %s", len(content), target)

    def append_file(self, path: str, content: str) -> None:
        target = self.resolve(path)
        if self._needs_privilege(target):
            self._privileged(["tee", "-a", str(target)], content)
        else:
            with target.open("a", encoding="utf-8") as f:
                f.write(content)
        logger.debug("Appended %d bytes to %s", len(content), target)

    def remove(self, path: str) -> None:
        target = self.resolve(path)
        if not target.exists():
            return
        if self._needs_privilege(target):
            self._privileged(["rm", "-f", str(target)])
        else:
            target.unlink(missing_ok=True)
        logger.debug("Removed %s", target)

    def _needs_privilege(self, target: Path) -> bool:
        if self._runner is None or not self._runner.use_sudo or os.geteuid() == 0:
            return False
        probe = target if target.exists() else target.parent
        while not probe.exists():
            probe = probe.parent
        return not os.access(probe, os.W_OK)

    def _privileged(self, args: list[str], input_text: str | None = None) -> None:
        assert self._runner is not None
        result = self._runner.run(args, privileged=True, input_text=input_text)
        if not result.ok:
            raise OSError(f"{' '.join(args)}: {result.error}")
