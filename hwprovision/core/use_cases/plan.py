"""
Plan use case — resolve both domains, merge them, build the action plan.

Nothing on the host changes. ``PrecedenceConflictError`` is not turned
into ``error``: it means the configuration tables themselves are
inconsistent, and it propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from hwprovision.adapters.registry import AdapterRegistry
from hwprovision.core.engine.reconciler import ReconcilePlan, build_plan, generate_run_id
from hwprovision.core.models.state import ConfigDomain, DesiredState, MergedState, Skip
from hwprovision.core.services.precedence import merge
from hwprovision.core.services.resolver import (
    GenericDriverResolver,
    VendorSpecificResolver,
    resolve_domains,
)
from hwprovision.core.use_cases.detect import DetectResult, run_detect

logger = logging.getLogger(__name__)

RESOLVED = "resolved"


def summarize_outcomes(
    outcomes: Sequence[tuple[ConfigDomain, DesiredState | Skip]],
) -> tuple[dict[str, str], dict[str, str]]:
    """Per-domain outcome kind and skip reason."""
    kinds: dict[str, str] = {}
    notes: dict[str, str] = {}
    for domain, outcome in outcomes:
        if isinstance(outcome, Skip):
            kinds[domain.value] = outcome.kind.value
            notes[domain.value] = outcome.reason
        else:
            kinds[domain.value] = RESOLVED
    return kinds, notes


@dataclass
class PlanResult:
    """Result of the plan use case."""

    detection: DetectResult | None = None
    outcomes: list[tuple[ConfigDomain, DesiredState | Skip]] = field(default_factory=list)
    merged: MergedState | None = None
    plan: ReconcilePlan | None = None
    error: str | None = None

    @property
    def outcome_kinds(self) -> dict[str, str]:
        return summarize_outcomes(self.outcomes)[0]

    @property
    def notes(self) -> dict[str, str]:
        return summarize_outcomes(self.outcomes)[1]

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        if self.detection:
            result.update(self.detection.to_dict())
        result["outcomes"] = self.outcome_kinds
        result["notes"] = self.notes
        if self.merged:
            result["merged"] = self.merged.to_dict()
        if self.plan:
            result["actions"] = [
                {"kind": a.kind, "target": a.target, "step": a.step}
                for a in self.plan.actions
            ]
        return result


def run_plan(
    config_path: Path | None = None,
    facts_file: Path | None = None,
    registry: AdapterRegistry | None = None,
    mock_mode: bool = False,
    run_id: str | None = None,
) -> PlanResult:
    """Compute what an apply would do.

    Raises:
        PrecedenceConflictError: the domains cannot be merged.
    """
    result = PlanResult()

    detection = run_detect(
        config_path=config_path,
        facts_file=facts_file,
        registry=registry,
        mock_mode=mock_mode,
    )
    result.detection = detection
    if detection.error:
        result.error = detection.error
        return result

    assert detection.facts is not None and detection.hardware is not None
    assert detection.settings is not None

    result.outcomes = resolve_domains(
        detection.hardware,
        detection.facts.installed_driver_packages,
        generic=GenericDriverResolver(session_env_file=detection.settings.session_env_file),
        vendor=VendorSpecificResolver(),
    )
    result.merged = merge(result.outcomes)
    result.plan = build_plan(result.merged, run_id or generate_run_id())

    logger.info(
        "Planned %d actions across %d domains",
        result.plan.total_actions, len(result.merged.domains),
    )
    return result
