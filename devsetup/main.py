"""
devsetup — CLI entrypoint.

Usage:
    devsetup --help
    devsetup profiles
    devsetup status dev-csharp
    devsetup install dev-csharp [--uninstall] [--force] [--debug] [-y]
    devsetup check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devsetup import __version__
from devsetup.core.engine.executor import VerifyResult
from devsetup.core.models.resource import ResourceKind
from devsetup.core.observability.logging_config import resolve_level, setup_logging
from devsetup.core.use_cases.status import ProfileStatusResult

KIND_CHOICE = click.Choice([kind.value for kind in ResourceKind], case_sensitive=False)


class InstallerGroup(click.Group):
    """Command group whose usage errors exit with status 1."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            e.exit_code = 1
            raise


@click.group(cls=InstallerGroup)
@click.version_option(version=__version__, prog_name="devsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--profiles-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="DEVSETUP_PROFILES_DIR",
    default=None,
    help="Directory searched for profiles before the built-in ones.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    profiles_dir: Path | None,
) -> None:
    """devsetup — converge a dev container to a declared set of tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["profiles_dir"] = profiles_dir

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))


def _kinds(values: tuple[str, ...]) -> list[ResourceKind] | None:
    return [ResourceKind(v.lower()) for v in values] or None


# ── install ─────────────────────────────────────────────────────


@cli.command()
@click.argument("profile")
@click.option(
    "--uninstall", is_flag=True, envvar="UNINSTALL_MODE",
    help="Remove the profile's resources instead of installing them.",
)
@click.option(
    "--force", is_flag=True, envvar="FORCE_MODE",
    help="Force removal even when other resources depend on it.",
)
@click.option(
    "--debug", is_flag=True, envvar="DEBUG_MODE",
    help="Enable debug logging for this run.",
)
@click.option("--kind", "kinds", multiple=True, type=KIND_CHOICE, help="Only this resource kind.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--yes", "-y", is_flag=True, envvar="AUTO_MODE",
    help="Skip the confirmation prompt.",
)
@click.option("--mock", is_flag=True, help="Use in-memory mock adapters (no real changes).")
@click.pass_context
def install(
    ctx: click.Context,
    profile: str,
    uninstall: bool,
    force: bool,
    debug: bool,
    kinds: tuple[str, ...],
    as_json: bool,
    mock: bool,
    yes: bool,
) -> None:
    """Install (or uninstall) every resource of a profile.

    Installed resources are updated to the latest version; absent ones
    are installed. With --uninstall, present resources are removed and
    absent ones are skipped.

    Examples:

        devsetup install dev-csharp

        devsetup install data-analytics --kind pip

        devsetup install powershell --uninstall --force -y

    The current state is shown and confirmed before anything changes,
    unless --yes (or AUTO_MODE) is given. JSON output never prompts.
    """
    from devsetup.adapters.registry import default_registry
    from devsetup.core.models.outcome import BatchReport, OperationOutcome
    from devsetup.core.models.run_config import RunConfig
    from devsetup.core.reporting.table import (
        outcome_rows,
        render_current_status,
        render_failures,
        render_header,
        render_outcome_status,
        render_status_table,
        render_summary,
    )
    from devsetup.core.use_cases.install import apply_profile
    from devsetup.core.use_cases.status import get_profile_status

    debug = debug or ctx.obj.get("debug", False)
    if debug and not ctx.obj.get("debug"):
        setup_logging(level="DEBUG")

    config = RunConfig(debug=debug, uninstall=uninstall, force=force)
    quiet = ctx.obj.get("quiet", False)
    registry = default_registry(mock_mode=mock)

    if not as_json and not yes:
        state = get_profile_status(
            profile,
            profiles_dir=ctx.obj.get("profiles_dir"),
            kinds=_kinds(kinds),
            registry=registry,
            config=config,
        )
        if state.error:
            click.secho(f"❌ {state.error}", fg="red")
            sys.exit(1)
        _print_profile_state(state)
        action = "uninstallation" if config.uninstall else "installation"
        if not click.confirm(f"Do you want to proceed with the {action}?", default=False):
            click.secho("Operation cancelled.", fg="yellow")
            sys.exit(1)

    def on_batch_start(kind, descriptors) -> None:
        click.echo()
        click.secho(
            f"📦 {render_header(kind, config.uninstall, config.force, len(descriptors))}",
            fg="cyan",
            bold=True,
        )

    def on_outcome(outcome: OperationOutcome) -> None:
        if outcome.ok:
            click.secho(f"   ✓ {outcome.name}", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {outcome.name}", fg="red", nl=False)
        click.echo(f" — {render_outcome_status(outcome)}")
        if outcome.error and (outcome.failed or ctx.obj.get("verbose")):
            click.echo(f"     │ {outcome.error}")

    def on_batch_end(batch: BatchReport) -> None:
        if quiet:
            return
        click.echo()
        click.echo(render_status_table(outcome_rows(batch.outcomes)))
        click.echo()
        click.echo(render_current_status(batch))
        click.echo()
        click.echo(render_summary(batch))

    callbacks = {}
    if not as_json:
        callbacks = {
            "on_batch_start": on_batch_start,
            "on_outcome": on_outcome,
            "on_batch_end": on_batch_end,
        }

    result = apply_profile(
        profile,
        config,
        profiles_dir=ctx.obj.get("profiles_dir"),
        kinds=_kinds(kinds),
        mock_mode=mock,
        registry=registry,
        **callbacks,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None and result.profile is not None

    if not report.batches:
        click.secho("   Nothing to do: the profile declares no matching resources.", fg="yellow")

    if report.verifications:
        click.echo()
        click.secho("🔎 Verification", fg="cyan", bold=True)
        for verification in report.verifications:
            _print_verification(verification)

    failures = render_failures(report.batches)
    if failures:
        click.echo()
        click.secho(failures, fg="red")

    click.echo()
    verb = "Uninstallation" if config.uninstall else "Installation"
    mode_label = "[mock] " if mock else ""
    if report.all_ok:
        click.secho(f"🏁 {mode_label}{verb} complete: {result.profile.name}", fg="green", bold=True)
        if not config.uninstall and result.profile.notes and not quiet:
            click.echo()
            click.secho("Notes:", bold=True)
            for note in result.profile.notes:
                click.echo(f"   • {note}")
    else:
        click.secho(
            f"❌ {mode_label}{verb} finished with "
            f"{report.failed + len(report.failed_verifications)} failure(s)",
            fg="red",
            bold=True,
        )
    click.echo()
    sys.exit(report.exit_code)


def _print_verification(verification: VerifyResult) -> None:
    if verification.skipped:
        click.secho(f"   ⊘ {verification.command}", fg="yellow", nl=False)
        click.echo(" (skipped)")
    elif verification.ok:
        click.secho(f"   ✓ {verification.command}", fg="green", nl=False)
        click.echo(f" → {verification.output.splitlines()[0]}" if verification.output else "")
    else:
        click.secho(f"   ✗ {verification.command}", fg="red", nl=False)
        click.echo(f" → {verification.output}" if verification.output else "")


# ── status ──────────────────────────────────────────────────────


@cli.command()
@click.argument("profile")
@click.option("--kind", "kinds", multiple=True, type=KIND_CHOICE, help="Only this resource kind.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Probe in-memory mock adapters.")
@click.pass_context
def status(
    ctx: click.Context,
    profile: str,
    kinds: tuple[str, ...],
    as_json: bool,
    mock: bool,
) -> None:
    """Show which of a profile's resources are installed."""
    from devsetup.core.use_cases.status import get_profile_status

    result = get_profile_status(
        profile,
        profiles_dir=ctx.obj.get("profiles_dir"),
        kinds=_kinds(kinds),
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    _print_profile_state(result)


def _print_profile_state(result: ProfileStatusResult) -> None:
    from devsetup.core.reporting.table import render_probe_table

    assert result.profile is not None
    click.secho(f"\n📋 {result.profile.name}", fg="cyan", bold=True)
    if result.profile.description:
        click.echo(f"   {result.profile.description}")

    for kind, (descriptors, states) in result.states.items():
        click.echo()
        click.secho(kind.plural[:1].upper() + kind.plural[1:], bold=True)
        click.echo(render_probe_table(descriptors, states))

    click.echo()
    click.secho(
        f"   Installed: {result.installed_count}/{result.total}",
        fg="green" if result.installed_count == result.total else "yellow",
        bold=True,
    )
    click.echo()


# ── profiles ────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def profiles(ctx: click.Context, as_json: bool) -> None:
    """List available profiles."""
    from devsetup.core.use_cases.status import list_profiles

    result = list_profiles(ctx.obj.get("profiles_dir"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.profiles:
        click.secho("No profiles found.", fg="yellow")
        return

    click.secho(f"\n📚 Profiles ({len(result.profiles)})", fg="cyan", bold=True)
    for entry in result.profiles:
        if "error" in entry:
            click.secho(f"   ✗ {entry['name']}", fg="red", nl=False)
            click.echo(f" — {entry['error']}")
            continue
        counts = ", ".join(f"{n} {kind}" for kind, n in entry["resources"].items())
        click.secho(f"   • {entry['name']}", bold=True, nl=False)
        click.echo(f" — {entry['description']}" if entry["description"] else "")
        if counts:
            click.echo(f"     {counts}")
    click.echo()


# ── check ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check(as_json: bool) -> None:
    """Show which package managers are available on this machine."""
    from devsetup.core.use_cases.status import check_tools

    result = check_tools()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho("\n🔧 Package managers", fg="cyan", bold=True)
    for info in result.tools.values():
        if info["available"]:
            click.secho(f"   ✓ {info['kind']:<10}", fg="green", nl=False)
        else:
            click.secho(f"   ✗ {info['kind']:<10}", fg="red", nl=False)
        click.echo(f" {info['tool']} ({info['label']})")
    if result.missing:
        click.echo()
        click.secho(
            f"   ⚠️  Missing: {', '.join(result.missing)}. "
            "Resources of these kinds will be reported as not installed.",
            fg="yellow",
        )
    click.echo()


if __name__ == "__main__":
    cli()
