"""
Action and ApplyResult models — the reconciliation contract.

Actions represent requested host changes. ApplyResults represent what
happened to each one. The reconciler turns every collaborator failure
into a failed ApplyResult; it never lets one escape as an exception.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ActionKind = Literal["trust_key", "repository", "refresh", "package", "file",
                     "remove", "append", "download", "service", "boot_image"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A single requested host change."""

    id: str                         # unique action identifier
    kind: ActionKind
    target: str                     # package name, path, service, repo name
    step: int = 0                   # reconciliation step (1..5)
    params: dict[str, Any] = Field(default_factory=dict)


class ApplyResult(BaseModel):
    """Outcome of one action.

    ``applied`` — the host was changed.
    ``satisfied`` — the host already matched; nothing was done.
    ``failed`` — a collaborator failed; ``error`` carries the reason.
    ``skipped`` — not attempted (dry-run or unmet precondition).
    """

    action_id: str
    kind: str
    target: str
    status: Literal["applied", "satisfied", "failed", "skipped"] = "applied"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action left the host in the desired state."""
        return self.status in ("applied", "satisfied")

    @property
    def changed(self) -> bool:
        return self.status == "applied"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def applied(cls, action: Action, output: str = "", **kwargs: Any) -> ApplyResult:
        """Create an applied result."""
        return cls(
            action_id=action.id,
            kind=action.kind,
            target=action.target,
            status="applied",
            output=output,
            **kwargs,
        )

    @classmethod
    def satisfied(cls, action: Action, output: str = "", **kwargs: Any) -> ApplyResult:
        """Create an already-satisfied result."""
        return cls(
            action_id=action.id,
            kind=action.kind,
            target=action.target,
            status="satisfied",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(cls, action: Action, error: str, **kwargs: Any) -> ApplyResult:
        """Create a failure result."""
        return cls(
            action_id=action.id,
            kind=action.kind,
            target=action.target,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(cls, action: Action, reason: str = "", **kwargs: Any) -> ApplyResult:
        """Create a skip result."""
        return cls(
            action_id=action.id,
            kind=action.kind,
            target=action.target,
            status="skipped",
            output=reason,
            **kwargs,
        )
