"""
CLI commands for hardware-in-the-loop (HITL) development mounts.

Thin wrappers over ``avocadoctl.core.use_cases.hitl``.
"""

from __future__ import annotations

import json
import sys

import click

from avocadoctl.ui.cli.ext import render_report


@click.group()
def hitl() -> None:
    """Hardware-in-the-loop — mount extensions from a development host."""


def _render(ctx: click.Context, result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.unmerge is not None and not ctx.obj.get("quiet", False):
        click.secho("\n⚡ unmerge", fg="cyan", bold=True)
        render_report(ctx, result.unmerge)

    hitl_report = result.hitl
    if hitl_report is not None:
        click.secho(f"\n🔌 HITL {hitl_report.operation}", fg="cyan", bold=True)
        for outcome in hitl_report.outcomes:
            if outcome.ok:
                click.secho(f"   ✓ {outcome.extension}", fg="green", nl=False)
                click.echo(f"  → {outcome.mount_point}")
            else:
                click.secho(f"   ✗ {outcome.extension}", fg="red", nl=False)
                click.echo(f"  → {outcome.error}")
            if outcome.services:
                click.echo(
                    f"     Found {len(outcome.services)} enabled service(s): "
                    f"{' '.join(outcome.services)}"
                )
            verb = "Created" if hitl_report.operation == "mount" else "Removed"
            for path in outcome.dropins:
                click.echo(f"     {verb} drop-in {path}")
        for warn in hitl_report.execution.warnings:
            click.secho(f"   ⚠️  {warn}", fg="yellow")
        click.echo(f"   {hitl_report.summary()}")

    if result.lifecycle is not None and not ctx.obj.get("quiet", False):
        click.secho(f"\n⚡ {result.lifecycle.operation}", fg="cyan", bold=True)
        render_report(ctx, result.lifecycle)

    click.echo()
    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    done = "mounted" if result.operation == "mount" else "unmounted"
    click.secho(f"✅ Extensions {done} successfully.", fg="green", bold=True)


@hitl.command()
@click.option("--server-ip", "-s", "server", required=True, help="NFS server address.")
@click.option(
    "--server-port",
    "-p",
    "port",
    type=click.IntRange(1, 65535),
    default=None,
    help="NFS server port (default: from config, 12049).",
)
@click.option(
    "--extension",
    "-e",
    "extensions",
    multiple=True,
    required=True,
    help="Extension to mount (repeatable).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def mount(
    ctx: click.Context,
    server: str,
    port: int | None,
    extensions: tuple[str, ...],
    as_json: bool,
    dry_run: bool,
) -> None:
    """Mount extensions from an NFS server and refresh.

    Examples:

        avocadoctl hitl mount -s 10.0.2.2 -e app

        avocadoctl hitl mount -s 10.0.2.2 -p 2049 -e app -e tools
    """
    from avocadoctl.core.use_cases.hitl import hitl_mount

    result = hitl_mount(
        server,
        list(extensions),
        port=port,
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
    )
    _render(ctx, result, as_json)


@hitl.command()
@click.option(
    "--extension",
    "-e",
    "extensions",
    multiple=True,
    required=True,
    help="Extension to unmount (repeatable).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Show what would run without running it.")
@click.pass_context
def unmount(
    ctx: click.Context,
    extensions: tuple[str, ...],
    as_json: bool,
    dry_run: bool,
) -> None:
    """Unmerge, unmount extensions and their drop-ins, then merge."""
    from avocadoctl.core.use_cases.hitl import hitl_unmount

    result = hitl_unmount(
        list(extensions),
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
    )
    _render(ctx, result, as_json)
