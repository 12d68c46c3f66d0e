"""
CLI commands for extensions — merge, unmerge, refresh, status, list,
enable and disable.

Thin wrappers over ``avocadoctl.core.use_cases.extensions`` and
``avocadoctl.core.use_cases.runtime``. The same command objects are
registered at top level and under the legacy ``ext`` group.
"""

from __future__ import annotations

import json
import sys

import click

from avocadoctl.core.engine.executor import ExecutionReport

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group()
def ext() -> None:
    """Extension management (legacy alias of the top-level commands)."""


# ── Rendering ────────────────────────────────────────────────────


def render_report(ctx: click.Context, report: ExecutionReport, indent: str = "   ") -> None:
    """Per-action lines, then warnings."""
    verbose = ctx.obj.get("verbose", False)

    for receipt in report.receipts:
        action = report.actions.get(receipt.action_id)
        label = action.label if action else receipt.action_id
        timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
        if receipt.ok:
            click.secho(f"{indent}✓ {label}", fg="green", nl=False)
            click.echo(timing)
            if verbose and receipt.output:
                for line in receipt.output.splitlines()[:10]:
                    click.echo(f"{indent}  │ {line}")
        elif receipt.failed:
            click.secho(f"{indent}✗ {label}", fg="red", nl=False)
            click.echo(timing)
            if receipt.error:
                for line in receipt.error.splitlines()[:5]:
                    click.echo(f"{indent}  │ {line}")
        else:
            click.secho(f"{indent}⊘ {label} ", fg="yellow", nl=False)
            click.echo(f"({receipt.output})")

    if report.warnings:
        click.echo()
        click.secho(f"{indent}⚠️  Warnings:", fg="yellow")
        for warn in report.warnings:
            click.echo(f"{indent}  • {warn}")


def _finish(ctx: click.Context, result, as_json: bool, done: str) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    report = result.report
    if report is None:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    mode_label = "[dry-run] " if result.dry_run else ""
    if not ctx.obj.get("quiet", False):
        click.secho(f"\n⚡ {mode_label}{result.operation}", fg="cyan", bold=True)
        render_report(ctx, report)
        click.echo()

    if report.error:
        click.secho(f"❌ {result.operation} failed at {report.failed_step}: {report.error}", fg="red")
        sys.exit(1)

    click.secho(f"✅ {mode_label}{done}", fg=_STATUS_COLORS.get(report.status, "white"), bold=True)


# ── Commands ─────────────────────────────────────────────────────


@ext.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def merge(ctx: click.Context, as_json: bool, dry_run: bool) -> None:
    """Merge extensions and run their post-merge directives."""
    from avocadoctl.core.use_cases.extensions import run_merge

    result = run_merge(config_path=ctx.obj.get("config_path"), dry_run=dry_run)
    _finish(ctx, result, as_json, "Extensions merged successfully.")


@ext.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def unmerge(ctx: click.Context, as_json: bool, dry_run: bool) -> None:
    """Run pre-unmerge directives and unmerge extensions."""
    from avocadoctl.core.use_cases.extensions import run_unmerge

    result = run_unmerge(config_path=ctx.obj.get("config_path"), dry_run=dry_run)
    _finish(ctx, result, as_json, "Extensions unmerged successfully.")


@ext.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def refresh(ctx: click.Context, as_json: bool, dry_run: bool) -> None:
    """Unmerge then merge extensions."""
    from avocadoctl.core.use_cases.extensions import run_refresh

    result = run_refresh(config_path=ctx.obj.get("config_path"), dry_run=dry_run)
    _finish(ctx, result, as_json, "Extensions refreshed successfully.")


@ext.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show status of merged extensions."""
    from avocadoctl.core.use_cases.extensions import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho("\n📋 Extension Status", fg="cyan", bold=True)
    for scope in result.scopes:
        click.echo()
        click.secho(f"   {scope.label}:", fg="white", bold=True)
        if scope.error:
            click.secho(f"     ❌ {scope.error}", fg="red")
            continue
        if not scope.merged:
            click.echo(f"     No {scope.scope} extensions currently merged.")
            continue
        for entry in scope.merged:
            since = f" (since {entry.since})" if entry.since else ""
            click.echo(f"     • {entry.hierarchy} → {', '.join(entry.extensions)}{since}")

    click.echo()


@ext.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List extensions available in the extensions path."""
    from avocadoctl.core.use_cases.extensions import list_available

    result = list_available(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.extensions:
        click.echo(f"No extensions found in {result.extensions_dir}")
        return

    click.secho(f"\n📦 Extensions in {result.extensions_dir}", fg="cyan", bold=True)
    for extension in result.extensions:
        kind = "image" if extension.image else "dir"
        click.echo(f"   • {extension.name} [{kind}]")
    click.echo()


# ── Runtime enablement ───────────────────────────────────────────


def _render_runtime(ctx: click.Context, result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    report = result.report
    if report is None:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    mode_label = "[dry-run] " if result.dry_run else ""
    verb = "Enabling" if report.operation == "enable" else "Disabling"
    done = "enabled" if report.operation == "enable" else "disabled"

    click.secho(f"{mode_label}{verb} extensions for runtime version: {report.version}",
                fg="cyan", bold=True)
    if report.all_extensions:
        click.echo("Removing all extensions")
    for outcome in report.outcomes:
        if outcome.ok:
            click.secho(f"   ✓ {done.capitalize()} extension: {outcome.extension}", fg="green")
            if ctx.obj.get("verbose", False) and outcome.target:
                click.echo(f"     {outcome.link} → {outcome.target}")
        else:
            click.secho(f"   ✗ {outcome.error}", fg="red", err=True)
    for warn in report.execution.warnings:
        click.secho(f"   ⚠️  {warn}", fg="yellow")
    if report.synced:
        click.echo("Synced changes to disk")

    click.echo()
    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)
    if report.failures:
        click.secho(
            f"❌ {mode_label}{done.capitalize()} {report.done} of {len(report.outcomes)} "
            f"extension(s) for runtime {report.version}",
            fg="red",
        )
        sys.exit(1)

    click.secho(
        f"✅ {mode_label}Successfully {done} {report.done} extension(s) "
        f"for runtime {report.version}",
        fg="green",
        bold=True,
    )


@ext.command()
@click.option("--runtime", "-r", default=None,
              help="Runtime version (default: VERSION_ID of the running OS).")
@click.argument("extensions", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def enable(
    ctx: click.Context,
    runtime: str | None,
    extensions: tuple[str, ...],
    as_json: bool,
    dry_run: bool,
) -> None:
    """Enable extensions for a specific runtime version.

    Examples:

        avocadoctl enable app tools

        avocadoctl enable --runtime 2.0.0 app
    """
    from avocadoctl.core.use_cases.runtime import enable_extensions

    result = enable_extensions(
        list(extensions),
        runtime=runtime,
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
    )
    _render_runtime(ctx, result, as_json)


@ext.command()
@click.option("--runtime", "-r", default=None,
              help="Runtime version (default: VERSION_ID of the running OS).")
@click.option("--all", "all_extensions", is_flag=True,
              help="Disable every extension enabled for the runtime.")
@click.argument("extensions", nargs=-1)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def disable(
    ctx: click.Context,
    runtime: str | None,
    all_extensions: bool,
    extensions: tuple[str, ...],
    as_json: bool,
    dry_run: bool,
) -> None:
    """Disable extensions for a specific runtime version.

    Examples:

        avocadoctl disable app

        avocadoctl disable --runtime 2.0.0 --all
    """
    if all_extensions and extensions:
        raise click.UsageError("Pass extension names or --all, not both.")
    if not all_extensions and not extensions:
        raise click.UsageError("Pass at least one extension name, or --all.")

    from avocadoctl.core.use_cases.runtime import disable_extensions

    result = disable_extensions(
        list(extensions),
        runtime=runtime,
        all_extensions=all_extensions,
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
    )
    _render_runtime(ctx, result, as_json)
