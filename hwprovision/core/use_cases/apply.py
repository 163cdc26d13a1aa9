"""
Apply use case — the full pipeline from probe to reconciled host.

probe → classify → resolve → merge → plan → reconcile → audit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from hwprovision.adapters.registry import AdapterRegistry
from hwprovision.core.engine.reconciler import Reconciler, RunReport
from hwprovision.core.persistence.audit import AuditEntry, AuditWriter
from hwprovision.core.use_cases.plan import PlanResult, run_plan

logger = logging.getLogger(__name__)


@dataclass
class ApplyRunResult:
    """Result of the apply use case."""

    planning: PlanResult | None = None
    report: RunReport | None = None
    audit_written: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        if self.planning and self.planning.detection and self.planning.detection.hardware:
            hw = self.planning.detection.hardware
            result["classification"] = hw.model_dump(mode="json")
        if self.report:
            result["report"] = self.report.to_dict()
        result["audit_written"] = self.audit_written
        return result


def run_apply(
    config_path: Path | None = None,
    facts_file: Path | None = None,
    registry: AdapterRegistry | None = None,
    mock_mode: bool = False,
    dry_run: bool = False,
) -> ApplyRunResult:
    """Converge the host to the merged desired state.

    Args:
        config_path: Optional explicit path to hwprovision.yml.
        facts_file: Classify these facts instead of probing the host.
        registry: Optional pre-configured adapter registry.
        mock_mode: Use in-memory adapters instead of the host.
        dry_run: Report what would change without changing it.

    Raises:
        PrecedenceConflictError: the domains cannot be merged.
    """
    result = ApplyRunResult()

    planning = run_plan(
        config_path=config_path,
        facts_file=facts_file,
        registry=registry,
        mock_mode=mock_mode,
    )
    result.planning = planning
    if planning.error:
        result.error = planning.error
        return result

    detection = planning.detection
    assert detection is not None and detection.registry is not None
    assert planning.plan is not None and planning.merged is not None

    report = Reconciler(detection.registry).apply(planning.plan, dry_run=dry_run)
    report.outcomes = planning.outcome_kinds
    report.notes = planning.notes
    report.advisories = list(planning.merged.advisories)
    result.report = report

    logger.info(
        "Run %s finished: %s (%d applied, %d satisfied, %d failed, %d skipped)",
        report.run_id, report.status,
        report.applied, report.satisfied, report.failed, report.skipped,
    )

    settings = detection.settings
    if settings is not None and settings.audit_log:
        facts = detection.facts
        hw = detection.hardware
        entry = AuditEntry.from_report(
            report,
            vendor=facts.vendor_string if facts else "",
            product=facts.product_name if facts else "",
            gpu_generation=hw.gpu.value if hw else "",
            context={"source": detection.source},
        )
        result.audit_written = AuditWriter(Path(settings.audit_log)).write(entry)

    return result
