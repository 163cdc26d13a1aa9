"""
hwprovision — CLI entrypoint.

Usage:
    hwprovision --help
    hwprovision detect
    hwprovision plan --facts host.yml
    hwprovision apply --dry-run
    hwprovision config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from hwprovision import __version__
from hwprovision.core.observability.logging_config import resolve_level, setup_from_env
from hwprovision.core.services.precedence import PrecedenceConflictError

_STATUS_STYLE = {
    "applied": ("✓", "green"),
    "satisfied": ("=", "white"),
    "failed": ("✗", "red"),
    "skipped": ("⊘", "yellow"),
}

_facts_option = click.option(
    "--facts",
    "facts_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Classify facts from a YAML/JSON file instead of probing the host.",
)
_mock_option = click.option("--mock", is_flag=True, help="Use in-memory adapters (no host access).")
_json_option = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")


@click.group()
@click.version_option(version=__version__, prog_name="hwprovision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hwprovision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hwprovision — configure NVIDIA drivers and ASUS laptop tooling."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_from_env(resolve_level(verbose=verbose, quiet=quiet, debug=debug))


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


# ── detect ──────────────────────────────────────────────────────


@cli.command()
@_json_option
@_facts_option
@_mock_option
@click.pass_context
def detect(ctx: click.Context, as_json: bool, facts_file: Path | None, mock: bool) -> None:
    """Probe the host and show its classification."""
    from hwprovision.core.use_cases.detect import run_detect

    result = run_detect(
        config_path=ctx.obj.get("config_path"),
        facts_file=facts_file,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        _fail(result.error)

    facts, hw = result.facts, result.hardware
    assert facts is not None and hw is not None

    click.secho(f"\n🔍 Hardware ({result.source})", fg="cyan", bold=True)
    click.echo(f"   Vendor:  {facts.vendor_string or '(unknown)'}")
    click.echo(f"   Product: {facts.product_name or '(unknown)'}")
    if hw.product_year:
        click.echo(f"   Year:    {hw.product_year}")
    click.echo()

    if facts.gpu_descriptors:
        for descriptor in facts.gpu_descriptors:
            click.echo(f"   • {descriptor}")
    else:
        click.echo("   No NVIDIA GPU found")

    gpu_color = "green" if hw.gpu_supported else "yellow"
    click.secho(f"   GPU generation: {hw.gpu.value}", fg=gpu_color, nl=False)
    click.echo(f" ({hw.gpu_family})" if hw.gpu_family else "")
    vendor_color = "green" if hw.vendor_matched else "white"
    click.secho(f"   Laptop vendor:  {hw.vendor.value}", fg=vendor_color)

    if facts.installed_driver_packages:
        click.echo(f"   Drivers:        {' '.join(sorted(facts.installed_driver_packages))}")
    if facts.installed_kernels:
        click.echo(f"   Kernels:        {' '.join(facts.installed_kernels)}")
    click.echo()


# ── plan ────────────────────────────────────────────────────────


@cli.command()
@_json_option
@_facts_option
@_mock_option
@click.pass_context
def plan(ctx: click.Context, as_json: bool, facts_file: Path | None, mock: bool) -> None:
    """Show what apply would change, without touching the host."""
    from hwprovision.core.use_cases.plan import run_plan

    try:
        result = run_plan(
            config_path=ctx.obj.get("config_path"),
            facts_file=facts_file,
            mock_mode=mock,
        )
    except PrecedenceConflictError as e:
        _fail(f"Precedence conflict: {e}")
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        _fail(result.error)

    merged, actions = result.merged, result.plan
    assert merged is not None and actions is not None

    click.secho("\n📋 Plan", fg="cyan", bold=True)
    _echo_outcomes(result.outcome_kinds, result.notes)
    click.echo()

    if actions.total_actions == 0:
        click.echo("   Nothing to do.")
    for action in actions.actions:
        click.echo(f"   {action.step}. {action.kind:<11} {action.target}")

    for s in merged.suppressed:
        click.secho(f"   ⊘ {s.domain.value} → {s.path} ({s.winner.value} wins: {s.reason})", fg="yellow")

    _echo_advisories(merged.advisories)
    click.echo()


# ── apply ───────────────────────────────────────────────────────


@cli.command()
@_json_option
@_facts_option
@_mock_option
@click.option("--dry-run", is_flag=True, help="Report changes without making them.")
@click.pass_context
def apply(
    ctx: click.Context,
    as_json: bool,
    facts_file: Path | None,
    mock: bool,
    dry_run: bool,
) -> None:
    """Converge the host to the desired configuration.

    Examples:

        hwprovision apply

        hwprovision apply --dry-run

        hwprovision apply --mock --facts host.yml
    """
    from hwprovision.core.use_cases.apply import run_apply

    try:
        result = run_apply(
            config_path=ctx.obj.get("config_path"),
            facts_file=facts_file,
            mock_mode=mock,
            dry_run=dry_run,
        )
    except PrecedenceConflictError as e:
        _fail(f"Precedence conflict: {e}")
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error or (result.report and result.report.failed > 0):
            sys.exit(1)
        return

    if result.error:
        _fail(result.error)

    report = result.report
    assert report is not None

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.secho(f"\n⚡ {mode_label}apply — {report.run_id}", fg="cyan", bold=True)
    _echo_outcomes(report.outcomes, report.notes)
    click.echo()

    for r in report.results:
        icon, color = _STATUS_STYLE[r.status]
        click.secho(f"   {icon} {r.kind:<11} {r.target}", fg=color, nl=False)
        timing = f" ({r.duration_ms}ms)" if r.duration_ms else ""
        click.echo(timing)
        if r.failed and r.error:
            for line in r.error.split("\n")[:5]:
                click.echo(f"     │ {line}")
        elif r.status == "skipped" and r.output:
            click.echo(f"     │ {r.output}")
        elif ctx.obj.get("verbose") and r.output:
            click.echo(f"     │ {r.output}")

    _echo_advisories(report.advisories)

    click.echo()
    status_color = {"ok": "green", "partial": "yellow", "failed": "red"}.get(report.status, "white")
    click.secho(
        f"   Result: {report.applied} applied, {report.satisfied} satisfied, "
        f"{report.failed} failed, {report.skipped} skipped",
        fg=status_color,
        bold=True,
    )
    if result.audit_written:
        click.secho("   💾 Run recorded in the audit log", fg="cyan")

    if report.failed > 0:
        click.echo()
        sys.exit(1)

    click.echo()


def _echo_outcomes(outcomes: dict[str, str], notes: dict[str, str]) -> None:
    for domain, kind in outcomes.items():
        if kind == "resolved":
            click.secho(f"   ✓ {domain}", fg="green")
        else:
            click.secho(f"   ⊘ {domain}: {kind}", fg="yellow")
            if notes.get(domain):
                click.echo(f"     {notes[domain]}")


def _echo_advisories(advisories: list[str]) -> None:
    if not advisories:
        return
    click.echo()
    click.secho("   ℹ️  Recommendations:", fg="blue")
    for note in advisories:
        click.echo(f"   • {note}")


# ── adapters ────────────────────────────────────────────────────


@cli.command()
@_json_option
@_mock_option
@click.pass_context
def adapters(ctx: click.Context, as_json: bool, mock: bool) -> None:
    """Show which host tools are available."""
    from hwprovision.core.config.loader import ConfigError, load_settings
    from hwprovision.core.use_cases.detect import registry_for

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        _fail(str(e))
        return

    status = registry_for(settings, mock_mode=mock).adapter_status()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    click.secho("\n🔌 Adapters", fg="cyan", bold=True)
    for role, info in status.items():
        if info["available"]:
            click.secho(f"   ✓ {role:<9} ", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {role:<9} ", fg="red", nl=False)
        click.echo(f"{info['name']} ({info['type']})")
    click.echo()


# ── config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@_json_option
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate hwprovision.yml."""
    from hwprovision.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        if result.config_path:
            click.echo(f"   File: {result.config_path}")
        assert result.settings is not None
        click.echo(f"   Root: {result.settings.root}")
        click.echo(f"   Session config: {result.settings.session_env_file}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
