"""
Pacman adapter — packages, repositories, and keys on Arch Linux.

Repositories are sections of pacman.conf; a repository counts as
configured when its ``[name]`` header is present. Keys are managed
with pacman-key and locally signed after import.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from hwprovision.adapters.base import FileSystem, Fetcher, PackageManager
from hwprovision.adapters.shell.command import CommandRunner
from hwprovision.core.models.state import RepositoryDescriptor

logger = logging.getLogger(__name__)

DEFAULT_PACMAN_CONF = "/etc/pacman.conf"


class PacmanPackageManager(PackageManager):
    """PackageManager backed by pacman and pacman-key."""

    def __init__(
        self,
        runner: CommandRunner,
        filesystem: FileSystem,
        fetcher: Fetcher | None = None,
        pacman_conf: str = DEFAULT_PACMAN_CONF,
    ):
        self._runner = runner
        self._fs = filesystem
        self._fetcher = fetcher
        self._pacman_conf = pacman_conf

    @property
    def name(self) -> str:
        return "pacman"

    def is_available(self) -> bool:
        return self._runner.available("pacman")

    # ── Packages ────────────────────────────────────────────────

    def is_installed(self, name: str) -> bool:
        return self._runner.run(["pacman", "-Q", name]).ok

    def list_installed(self, names: Iterable[str]) -> set[str]:
        wanted = sorted(set(names))
        if not wanted:
            return set()
        # Exits non-zero when any name is missing; stdout still lists the rest.
        result = self._runner.run(["pacman", "-Q", *wanted])
        found = {line.split()[0] for line in result.stdout.splitlines() if line.strip()}
        return found & set(wanted)

    def install(self, names: list[str]) -> dict[str, bool]:
        if not names:
            return {}
        result = self._runner.run(
            ["pacman", "-S", "--needed", "--noconfirm", *names],
            privileged=True,
        )
        if not result.ok:
            logger.warning("pacman -S failed: %s", result.error)
        installed = self.list_installed(names)
        return {n: n in installed for n in names}

    def refresh(self) -> bool:
        result = self._runner.run(["pacman", "-Sy", "--noconfirm"], privileged=True)
        if not result.ok:
            logger.warning("Package database refresh failed: %s", result.error)
        return result.ok

    # ── Repositories ────────────────────────────────────────────

    def has_repository(self, name: str) -> bool:
        content = self._fs.read_file(self._pacman_conf) or ""
        header = re.compile(rf"^\s*\[{re.escape(name)}\]\s*$", re.MULTILINE)
        return header.search(content) is not None

    def add_repository(self, repo: RepositoryDescriptor) -> bool:
        comment = f"# {repo.description}\n" if repo.description else ""
        section = f"\n{comment}[{repo.name}]\nServer = {repo.server}\n"
        try:
            self._fs.append_file(self._pacman_conf, section)
        except OSError as e:
            logger.error("Cannot add repository %s: %s", repo.name, e)
            return False
        return True

    # ── Keys ────────────────────────────────────────────────────

    def has_trust_key(self, key_id: str) -> bool:
        return self._runner.run(["pacman-key", "--list-keys", key_id]).ok

    def import_trust_key(self, key_id: str, key_url: str = "") -> bool:
        received = self._runner.run(["pacman-key", "--recv-keys", key_id], privileged=True)
        if not received.ok:
            logger.warning("Could not receive key %s from keyserver, trying %s", key_id, key_url)
            if not (key_url and self._add_key_from_url(key_url)):
                return False

        finger = self._runner.run(["pacman-key", "--finger", key_id], privileged=True)
        if not finger.ok:
            logger.warning("Could not verify key fingerprint %s", key_id)
        signed = self._runner.run(["pacman-key", "--lsign-key", key_id], privileged=True)
        if not signed.ok:
            logger.warning("Could not locally sign key %s: %s", key_id, signed.error)
        return self.has_trust_key(key_id)

    def _add_key_from_url(self, key_url: str) -> bool:
        if self._fetcher is None:
            return False
        try:
            armored = self._fetcher.fetch(key_url)
        except OSError as e:
            logger.warning("Key download failed: %s", e)
            return False
        # No file argument: pacman-key reads the key from stdin.
        return self._runner.run(["pacman-key", "-a"], privileged=True, input_text=armored).ok
