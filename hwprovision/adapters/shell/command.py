"""
Shell command runner — the single place where subprocesses are spawned.

Every system adapter (pacman, systemctl, mkinitcpio, lspci) goes
through CommandRunner so that privilege escalation, timeouts, and
logging are handled the same way everywhere. It never raises: missing
binaries and timeouts come back as failed CommandResults.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a single command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> str:
        return self.stderr or f"Command exited with code {self.returncode}"


class CommandRunner:
    """Run commands with optional sudo and a timeout.

    Args:
        use_sudo: Prefix privileged commands with ``sudo`` when not root.
        timeout: Seconds before a command is killed.
        chroot: Target system root. Anything other than ``/`` runs every
            command inside it through ``arch-chroot``, which needs root.
    """

    def __init__(self, use_sudo: bool = True, timeout: int = 600, chroot: str = "/"):
        self.use_sudo = use_sudo
        self.timeout = timeout
        self.chroot = chroot

    @property
    def chrooted(self) -> bool:
        return os.path.normpath(self.chroot) != "/"

    def available(self, binary: str) -> bool:
        if self.chrooted:
            return shutil.which("arch-chroot") is not None and os.path.exists(
                os.path.join(self.chroot, "usr", "bin", binary)
            )
        return shutil.which(binary) is not None

    def build_command(self, args: list[str], privileged: bool = False) -> list[str]:
        """Final argv: optional sudo, optional arch-chroot, then the command."""
        cmd = list(args)
        if self.chrooted:
            cmd = ["arch-chroot", self.chroot] + cmd
            privileged = True
        if privileged and self.use_sudo and os.geteuid() != 0:
            cmd = ["sudo"] + cmd
        return cmd

    def run(
        self,
        args: list[str],
        *,
        privileged: bool = False,
        timeout: int | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run a command and capture its output."""
        cmd = self.build_command(args, privileged)
        timeout = timeout or self.timeout

        logger.debug("Executing: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                input=input_text,
            )
        except FileNotFoundError:
            return CommandResult(args=cmd, returncode=127, stderr=f"{cmd[0]}: command not found")
        except subprocess.TimeoutExpired:
            return CommandResult(args=cmd, returncode=124, stderr=f"Command timed out after {timeout}s")
        except OSError as e:
            return CommandResult(args=cmd, returncode=126, stderr=f"Command execution error: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        outcome = CommandResult(
            args=cmd,
            returncode=result.returncode,
            stdout=result.stdout.strip(),
            stderr=result.stderr.strip(),
            duration_ms=elapsed_ms,
        )
        if not outcome.ok:
            logger.debug("Command failed (%d): %s", outcome.returncode, outcome.error)
        return outcome
