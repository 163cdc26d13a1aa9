"""
Precedence merger — fold per-domain desired states into one.

Override-type resources (whole files) are decided by the declared
domain precedence: for any path, the highest-priority writer wins and
every lower-priority writer is suppressed. A winning artifact can also
declare other paths obsolete; lower-priority writes to those paths are
dropped and the files are scheduled for removal.

Union-type resources (packages, services, repositories, appends,
downloads) cannot conflict and are simply unioned, so their result
does not depend on input order.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hwprovision.core.models.state import (
    ConfigDomain,
    DesiredState,
    FileArtifact,
    MergedState,
    Skip,
    SuppressedWrite,
)

logger = logging.getLogger(__name__)

# Lower rank wins. More specific domains come first.
DOMAIN_PRECEDENCE: dict[ConfigDomain, int] = {
    ConfigDomain.VENDOR_SPECIFIC: 0,
    ConfigDomain.GENERIC_DRIVER: 1,
}


class PrecedenceConflictError(Exception):
    """Two writers with equal priority claim the same resource.

    This is a defect in the configuration tables, not a host problem,
    so it aborts the run.
    """


class PrecedenceMerger:
    """Merge DesiredStates according to a precedence table."""

    def __init__(self, precedence: dict[ConfigDomain, int] | None = None):
        self._precedence = dict(precedence or DOMAIN_PRECEDENCE)

    def rank(self, domain: ConfigDomain) -> int:
        try:
            return self._precedence[domain]
        except KeyError:
            raise PrecedenceConflictError(
                f"Domain '{domain.value}' has no declared precedence"
            ) from None

    def merge(
        self,
        states: Sequence[tuple[ConfigDomain, DesiredState | Skip]],
    ) -> MergedState:
        """Merge domain outcomes. Skips contribute nothing.

        Raises:
            PrecedenceConflictError: equal-priority writers disagree on a
                path, or a domain is missing from the precedence table.
        """
        active = [(d, s) for d, s in states if isinstance(s, DesiredState)]
        # Stable sort keeps input order among equal ranks for reporting.
        ordered = sorted(active, key=lambda item: self.rank(item[0]))

        merged = MergedState(domains=[d for d, _ in ordered])
        ranks: dict[str, int] = {}
        obsolete: dict[str, tuple[ConfigDomain, int, str]] = {}

        for domain, state in ordered:
            rank = self.rank(domain)
            self._union(merged, state)

            for path, content in state.files_to_write.items():
                if path in obsolete:
                    owner, owner_rank, by_path = obsolete[path]
                    if owner_rank == rank:
                        raise PrecedenceConflictError(
                            f"'{path}' is both written and superseded by "
                            f"equal-priority domains ({owner.value}, {domain.value})"
                        )
                    merged.suppressed.append(SuppressedWrite(
                        path=path, domain=domain, winner=owner,
                        reason=f"superseded by {by_path}",
                    ))
                    continue

                existing = merged.files.get(path)
                if existing is None:
                    merged.files[path] = FileArtifact(content=content, domain=domain)
                    ranks[path] = rank
                    continue

                if ranks[path] == rank:
                    if existing.content != content:
                        raise PrecedenceConflictError(
                            f"Conflicting content for '{path}' from equal-priority "
                            f"domains ({existing.domain.value}, {domain.value})"
                        )
                    continue

                merged.suppressed.append(SuppressedWrite(
                    path=path, domain=domain, winner=existing.domain, reason="same path",
                ))

            for winner_path, paths in state.supersedes.items():
                # Only an artifact that actually won can obsolete others.
                artifact = merged.files.get(winner_path)
                if artifact is None or artifact.domain != domain:
                    continue
                for path in paths:
                    if path in merged.files and ranks[path] == rank:
                        raise PrecedenceConflictError(
                            f"'{path}' is both written and superseded by "
                            f"domain '{domain.value}'"
                        )
                    obsolete.setdefault(path, (domain, rank, winner_path))

        # A path still written here belongs to a higher-priority domain.
        for path in obsolete:
            if path not in merged.files:
                merged.files_to_remove.add(path)

        for s in merged.suppressed:
            logger.info(
                "Suppressed %s write to %s (%s wins: %s)",
                s.domain.value, s.path, s.winner.value, s.reason,
            )
        return merged

    @staticmethod
    def _union(merged: MergedState, state: DesiredState) -> None:
        merged.packages |= state.packages
        merged.services_to_enable |= state.services_to_enable
        merged.services_if_present |= state.services_if_present
        merged.repositories_required |= state.repositories_required
        for path, block in state.file_appends.items():
            merged.file_appends.setdefault(path, block)
        for path, url in state.downloads.items():
            merged.downloads.setdefault(path, url)
        for note in state.advisories:
            if note not in merged.advisories:
                merged.advisories.append(note)


def merge(
    states: Sequence[tuple[ConfigDomain, DesiredState | Skip]],
) -> MergedState:
    """Merge with the default precedence table."""
    return PrecedenceMerger().merge(states)
