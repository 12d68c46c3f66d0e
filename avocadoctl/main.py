"""
avocadoctl — CLI entrypoint.

Usage:
    avocadoctl --help
    avocadoctl merge
    avocadoctl enable --runtime 2.0.0 app
    avocadoctl hitl mount -s 10.0.2.2 -e app
    avocadoctl config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from avocadoctl import __version__
from avocadoctl.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="avocadoctl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to avocadoctl.yml (default: /etc/avocado/avocadoctl.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """avocadoctl — manage system extensions and HITL development mounts."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("AVOCADO_LOG_LEVEL")),
        log_file=os.environ.get("AVOCADO_LOG_FILE"),
        log_file_level=os.environ.get("AVOCADO_LOG_FILE_LEVEL"),
    )


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate avocadoctl.yml configuration."""
    from avocadoctl.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Extensions: {result.config.get_extensions_dir()}")
        click.echo(f"   Sysext mutable: {result.config.get_sysext_mutable()}")
        click.echo(f"   Confext mutable: {result.config.get_confext_mutable()}")
        click.echo(f"   HITL port: {result.config.avocado.hitl.server_port}")
        click.echo(f"   Runtime links: {result.config.get_runtime_dir()}")
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


# ── Register sub-command groups from avocadoctl/ui/cli/ ───────────

from avocadoctl.ui.cli.ext import (
    disable,
    enable,
    ext,
    list_cmd,
    merge,
    refresh,
    status,
    unmerge,
)
from avocadoctl.ui.cli.hitl import hitl

cli.add_command(ext)
cli.add_command(hitl)

# Top-level aliases for the ext commands
for _command in (merge, unmerge, refresh, status, list_cmd, enable, disable):
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
