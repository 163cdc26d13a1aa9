"""
Audit ledger — append-only record of apply runs.

Each ``hwprovision apply`` writes one entry to an NDJSON
(newline-delimited JSON) file when ``audit_log`` is configured. The
pipeline never reads the ledger back; it exists for the operator.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from hwprovision.core.engine.reconciler import RunReport

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single apply run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    dry_run: bool = False

    # Host
    vendor: str = ""
    product: str = ""
    gpu_generation: str = ""

    # Results
    status: str = ""               # ok, partial, failed
    actions_total: int = 0
    actions_applied: int = 0
    actions_satisfied: int = 0
    actions_failed: int = 0
    actions_skipped: int = 0
    duration_ms: int = 0

    outcomes: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(cls, report: RunReport, **kwargs: Any) -> AuditEntry:
        """Summarize a RunReport."""
        return cls(
            run_id=report.run_id,
            dry_run=report.dry_run,
            status=report.status,
            actions_total=report.total,
            actions_applied=report.applied,
            actions_satisfied=report.satisfied,
            actions_failed=report.failed,
            actions_skipped=report.skipped,
            duration_ms=sum(r.duration_ms for r in report.results),
            outcomes=dict(report.outcomes),
            errors=[f"{r.kind} {r.target}: {r.error}" for r in report.results if r.failed],
            **kwargs,
        )


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> bool:
        """Append one entry. Returns False if the ledger is not writable."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)
            return False
        logger.debug("Audit entry written: %s", entry.run_id)
        return True

    def read_all(self) -> list[AuditEntry]:
        """Read all entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
