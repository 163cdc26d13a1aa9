"""
Reconciler — converge the host toward a MergedState.

Flow:
    merged state → build plan (ordered actions) → apply action-by-action → RunReport

Steps run in a fixed order:
    1. trust keys and repositories (refresh once if a repository was added)
    2. packages (one batch install, per-package results)
    3. files: writes, removals, marker-guarded appends, downloads
    4. services
    5. boot image, only if step 3 changed a module-loading resource

Every action reads current state first and only acts on a delta, so a
second run against the same desired state reports everything as
satisfied. Collaborator failures become failed results; the steps are
independent, so a failed install never blocks unrelated file writes.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from hwprovision.adapters.registry import AdapterRegistry
from hwprovision.core.models.action import Action, ApplyResult
from hwprovision.core.models.state import MergedState, RepositoryDescriptor
from hwprovision.core.services.catalog import MODULE_RESOURCE_PREFIXES

logger = logging.getLogger(__name__)

BOOT_IMAGE_TARGET = "initramfs"


def is_module_resource(path: str) -> bool:
    """Whether a path configures kernel module loading."""
    return path.startswith(MODULE_RESOURCE_PREFIXES)


@dataclass
class ReconcilePlan:
    """Ordered actions derived from a merged state."""

    run_id: str = ""
    actions: list[Action] = field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return len(self.actions)

    def by_kind(self, kind: str) -> list[Action]:
        return [a for a in self.actions if a.kind == kind]


@dataclass
class RunReport:
    """Aggregated outcome of a reconciliation run."""

    run_id: str = ""
    dry_run: bool = False
    results: list[ApplyResult] = field(default_factory=list)
    outcomes: dict[str, str] = field(default_factory=dict)   # domain -> resolved / skip kind
    notes: dict[str, str] = field(default_factory=dict)      # domain -> skip reason
    advisories: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def applied(self) -> int:
        return sum(1 for r in self.results if r.status == "applied")

    @property
    def satisfied(self) -> int:
        return sum(1 for r in self.results if r.status == "satisfied")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == "skipped")

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.applied + self.satisfied > 0:
            return "partial"
        return "failed"

    def results_for(self, kind: str) -> list[ApplyResult]:
        return [r for r in self.results if r.kind == kind]

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "status": self.status,
            "total": self.total,
            "applied": self.applied,
            "satisfied": self.satisfied,
            "failed": self.failed,
            "skipped": self.skipped,
            "outcomes": dict(self.outcomes),
            "notes": dict(self.notes),
            "advisories": list(self.advisories),
            "results": [r.model_dump(mode="json") for r in self.results],
        }


def build_plan(merged: MergedState, run_id: str) -> ReconcilePlan:
    """Turn a merged state into an ordered list of actions."""
    plan = ReconcilePlan(run_id=run_id)

    def add(kind: str, target: str, step: int, **params) -> None:
        plan.actions.append(Action(
            id=f"{run_id}:{kind}:{target}",
            kind=kind,
            target=target,
            step=step,
            params=params,
        ))

    # ── Step 1: repositories ────────────────────────────────────
    for repo in sorted(merged.repositories_required, key=lambda r: r.name):
        if repo.key_id:
            add("trust_key", repo.key_id, 1, key_url=repo.key_url, repository=repo.name)
        add("repository", repo.name, 1, descriptor=repo.model_dump())

    # ── Step 2: packages ────────────────────────────────────────
    for name in sorted(merged.packages):
        add("package", name, 2)

    # ── Step 3: files ───────────────────────────────────────────
    for path, artifact in sorted(merged.files.items()):
        add("file", path, 3, content=artifact.content, domain=artifact.domain.value)
    for path in sorted(merged.files_to_remove):
        add("remove", path, 3)
    for path, block in sorted(merged.file_appends.items()):
        add("append", path, 3, marker=block.marker, block=block.block)
    for path, url in sorted(merged.downloads.items()):
        add("download", path, 3, url=url)

    # ── Step 4: services ────────────────────────────────────────
    for name in sorted(merged.services_to_enable):
        add("service", name, 4, optional=False)
    for name in sorted(merged.services_if_present - merged.services_to_enable):
        add("service", name, 4, optional=True)

    # ── Step 5: boot image ──────────────────────────────────────
    touches_modules = any(
        is_module_resource(a.target) for a in plan.actions if a.kind in ("file", "remove")
    )
    if touches_modules:
        add("boot_image", BOOT_IMAGE_TARGET, 5)

    return plan


class Reconciler:
    """Apply a plan through the adapter registry."""

    def __init__(self, registry: AdapterRegistry):
        self._registry = registry
        self._dry_run = False
        self._module_changed = False
        self._unit_names: set[str] | None = None

    def apply(self, plan: ReconcilePlan, dry_run: bool = False) -> RunReport:
        """Execute every action in plan order.

        Args:
            plan: The plan to apply.
            dry_run: Read current state and report what would change
                without mutating anything.

        Returns:
            RunReport with one result per action (plus a refresh result
            when a repository was added).
        """
        report = RunReport(run_id=plan.run_id, dry_run=dry_run)
        self._dry_run = dry_run
        self._module_changed = False
        self._unit_names = None

        # Step 1
        repo_results = [self._execute(a) for a in plan.actions if a.step == 1]
        report.results.extend(repo_results)
        added = [r for r in repo_results if r.kind == "repository"
                 and (r.changed or (dry_run and r.status == "skipped"))]
        if added:
            report.results.append(self._refresh(plan.run_id))

        # Step 2
        packages = plan.by_kind("package")
        if packages:
            report.results.extend(self._apply_packages(packages))

        # Steps 3-5
        for action in plan.actions:
            if action.step >= 3:
                report.results.append(self._execute(action))

        return report

    # ── Dispatch ────────────────────────────────────────────────

    def _execute(self, action: Action) -> ApplyResult:
        handlers = {
            "trust_key": self._apply_trust_key,
            "repository": self._apply_repository,
            "refresh": self._apply_refresh,
            "file": self._apply_file,
            "remove": self._apply_remove,
            "append": self._apply_append,
            "download": self._apply_download,
            "service": self._apply_service,
            "boot_image": self._apply_boot_image,
        }
        handler = handlers.get(action.kind)
        if handler is None:
            return ApplyResult.failure(action, f"No handler for action kind '{action.kind}'")
        start = time.monotonic()
        try:
            result = handler(action)
        except Exception as e:
            # Adapters report failure by return value; anything raised is
            # still contained to this one action.
            result = ApplyResult.failure(action, error=f"{type(e).__name__}: {e}")
        result.duration_ms = int((time.monotonic() - start) * 1000)
        self._log(result)
        return result

    @staticmethod
    def _log(result: ApplyResult) -> None:
        marker = {"applied": "✓", "satisfied": "=", "failed": "✗", "skipped": "⊘"}[result.status]
        if result.failed:
            logger.warning("%s %s %s: %s", marker, result.kind, result.target, result.error)
        else:
            logger.info("%s %s %s → %s", marker, result.kind, result.target, result.status)

    # ── Step 1 ──────────────────────────────────────────────────

    def _apply_trust_key(self, action: Action) -> ApplyResult:
        pm = self._registry.packages
        if pm.has_trust_key(action.target):
            return ApplyResult.satisfied(action, "Key already present")
        if self._dry_run:
            return ApplyResult.skip(action, f"[dry-run] Would import key {action.target}")
        if pm.import_trust_key(action.target, action.params.get("key_url", "")):
            return ApplyResult.applied(action, "Key imported and locally signed")
        return ApplyResult.failure(action, f"Could not import key {action.target}")

    def _apply_repository(self, action: Action) -> ApplyResult:
        pm = self._registry.packages
        if pm.has_repository(action.target):
            return ApplyResult.satisfied(action, "Repository already configured")
        if self._dry_run:
            return ApplyResult.skip(action, f"[dry-run] Would add repository [{action.target}]")
        repo = RepositoryDescriptor.model_validate(action.params["descriptor"])
        if pm.add_repository(repo):
            return ApplyResult.applied(action, f"Repository [{repo.name}] added")
        return ApplyResult.failure(action, f"Could not add repository [{repo.name}]")

    def _refresh(self, run_id: str) -> ApplyResult:
        action = Action(id=f"{run_id}:refresh:packages", kind="refresh", target="packages", step=1)
        return self._execute(action)

    def _apply_refresh(self, action: Action) -> ApplyResult:
        if self._dry_run:
            return ApplyResult.skip(action, "[dry-run] Would refresh package database")
        if self._registry.packages.refresh():
            return ApplyResult.applied(action, "Package database refreshed")
        return ApplyResult.failure(action, "Package database refresh failed")

    # ── Step 2 ──────────────────────────────────────────────────

    def _apply_packages(self, actions: list[Action]) -> list[ApplyResult]:
        """Install every missing package in one batch.

        Results stay per package: a package that fails to install does
        not hide the others that succeeded.
        """
        start = time.monotonic()
        results = self._package_results(actions)
        elapsed = int((time.monotonic() - start) * 1000)
        for r in results:
            r.duration_ms = elapsed
            self._log(r)
        return results

    def _package_results(self, actions: list[Action]) -> list[ApplyResult]:
        pm = self._registry.packages
        names = [a.target for a in actions]
        try:
            installed = pm.list_installed(names)
        except Exception as e:
            return [ApplyResult.failure(a, f"Cannot query package database: {e}") for a in actions]

        missing = [n for n in names if n not in installed]
        outcome: dict[str, bool] = {}
        error = ""
        if missing and not self._dry_run:
            logger.info("Installing packages: %s", " ".join(missing))
            try:
                outcome = pm.install(missing)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"

        results = []
        for a in actions:
            if a.target in installed:
                results.append(ApplyResult.satisfied(a, "Already installed"))
            elif self._dry_run:
                results.append(ApplyResult.skip(a, f"[dry-run] Would install {a.target}"))
            elif outcome.get(a.target):
                results.append(ApplyResult.applied(a, "Installed"))
            else:
                results.append(ApplyResult.failure(a, error or f"Failed to install {a.target}"))
        return results

    # ── Step 3 ──────────────────────────────────────────────────

    def _apply_file(self, action: Action) -> ApplyResult:
        fs = self._registry.files
        content = action.params["content"]
        if fs.read_file(action.target) == content:
            return ApplyResult.satisfied(action, "Content unchanged")
        if self._dry_run:
            self._note_module_change(action.target)
            return ApplyResult.skip(action, f"[dry-run] Would write {action.target}")
        fs.write_file(action.target, content)
        self._note_module_change(action.target)
        return ApplyResult.applied(
            action, f"Written {len(content)} bytes",
            metadata={"domain": action.params.get("domain", "")},
        )

    def _apply_remove(self, action: Action) -> ApplyResult:
        fs = self._registry.files
        if not fs.exists(action.target):
            return ApplyResult.satisfied(action, "Already absent")
        if self._dry_run:
            self._note_module_change(action.target)
            return ApplyResult.skip(action, f"[dry-run] Would remove {action.target}")
        fs.remove(action.target)
        self._note_module_change(action.target)
        return ApplyResult.applied(action, "Removed superseded file")

    def _apply_append(self, action: Action) -> ApplyResult:
        fs = self._registry.files
        current = fs.read_file(action.target)
        if current is None:
            return ApplyResult.skip(action, f"{action.target} not found, skipping")
        if action.params["marker"] in current:
            return ApplyResult.satisfied(action, "Block already present")
        if self._dry_run:
            return ApplyResult.skip(action, f"[dry-run] Would append to {action.target}")
        fs.append_file(action.target, action.params["block"])
        return ApplyResult.applied(action, "Block appended")

    def _apply_download(self, action: Action) -> ApplyResult:
        fs = self._registry.files
        if fs.exists(action.target):
            return ApplyResult.satisfied(action, "Already present")
        if self._dry_run:
            return ApplyResult.skip(action, f"[dry-run] Would download {action.params['url']}")
        try:
            content = self._registry.fetch.fetch(action.params["url"])
        except OSError as e:
            return ApplyResult.failure(action, f"Could not download {action.params['url']}: {e}")
        fs.write_file(action.target, content)
        return ApplyResult.applied(action, f"Downloaded {len(content)} bytes")

    def _note_module_change(self, path: str) -> None:
        if is_module_resource(path):
            self._module_changed = True

    # ── Step 4 ──────────────────────────────────────────────────

    def _apply_service(self, action: Action) -> ApplyResult:
        sm = self._registry.services
        if action.params.get("optional"):
            if self._unit_names is None:
                self._unit_names = sm.list_unit_names()
            if action.target not in self._unit_names:
                return ApplyResult.skip(action, f"{action.target} not installed")
        if sm.is_enabled(action.target):
            return ApplyResult.satisfied(action, "Already enabled")
        if self._dry_run:
            return ApplyResult.skip(action, f"[dry-run] Would enable {action.target}")
        if sm.enable(action.target):
            return ApplyResult.applied(action, "Enabled")
        return ApplyResult.failure(action, f"Could not enable {action.target}")

    # ── Step 5 ──────────────────────────────────────────────────

    def _apply_boot_image(self, action: Action) -> ApplyResult:
        if not self._module_changed:
            return ApplyResult.satisfied(action, "No module-loading changes")
        if self._dry_run:
            return ApplyResult.skip(action, "[dry-run] Would regenerate boot images")
        if self._registry.boot.regenerate():
            return ApplyResult.applied(action, "Boot images regenerated")
        return ApplyResult.failure(action, "Boot image regeneration failed")


def reconcile(
    merged: MergedState,
    registry: AdapterRegistry,
    run_id: str | None = None,
    dry_run: bool = False,
) -> RunReport:
    """Build a plan for ``merged`` and apply it."""
    plan = build_plan(merged, run_id or generate_run_id())
    report = Reconciler(registry).apply(plan, dry_run=dry_run)
    report.advisories = list(merged.advisories)
    return report


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
