"""
rebootwatch — CLI entrypoint.

Usage:
    python -m rebootwatch.main --help
    rebootwatch check SERVER01 SERVER02 --fallback
    type hosts.txt | rebootwatch check --json
    rebootwatch config check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from rebootwatch import __version__
from rebootwatch.core.observability.logging_config import setup_from_env


@click.group()
@click.version_option(version=__version__, prog_name="rebootwatch")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to rebootwatch.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """rebootwatch — detect pending reboots on Windows hosts."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_env(debug=debug, verbose=verbose, quiet=quiet)


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate rebootwatch.yml."""
    from rebootwatch.core.config.loader import ConfigError, find_config_file, load_settings
    from rebootwatch.ui.cli.check import EXIT_CONFIG_ERROR

    path: Path | None = ctx.obj.get("config_path") or find_config_file()
    try:
        settings = load_settings(path, search=False)
    except ConfigError as e:
        if as_json:
            click.echo(json.dumps({"valid": False, "path": str(path) if path else None, "error": str(e)}))
        else:
            click.secho(f"❌ {e}", fg="red", bold=True)
        sys.exit(EXIT_CONFIG_ERROR)

    if as_json:
        click.echo(json.dumps({
            "valid": True,
            "path": str(path) if path else None,
            "settings": settings.model_dump(mode="json"),
        }, indent=2))
        return

    if path is None:
        click.secho("ℹ️  No rebootwatch.yml found — using defaults", fg="yellow")
    else:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   File: {path}")
    click.echo(f"   Timeout: {settings.timeout_seconds}s")
    click.echo(f"   Workers: {settings.workers}")
    click.echo(f"   Fallback: {'enabled' if settings.enable_fallback else 'disabled'}")
    if settings.local_aliases:
        click.echo(f"   Local aliases: {', '.join(settings.local_aliases)}")
    click.echo()


# ── Register sub-commands from rebootwatch/ui/cli/ ────────────────

from rebootwatch.ui.cli.check import check, last

cli.add_command(check)
cli.add_command(last)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
