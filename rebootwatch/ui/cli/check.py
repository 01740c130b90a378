"""
CLI commands for pending-reboot checks.

Thin wrappers over ``rebootwatch.core.use_cases.check``.
"""

from __future__ import annotations

import json
import sys
import threading
from collections.abc import Iterator
from pathlib import Path

import click

# Exit codes for --exit-code
EXIT_REBOOT_REQUIRED = 1
EXIT_CONFIG_ERROR = 2
EXIT_DENIED = 3
EXIT_NO_PREVIOUS_RUN = 4
EXIT_CANCELLED = 130


def _stdin_targets() -> Iterator[str]:
    """Line-delimited targets from stdin, read lazily."""
    for line in sys.stdin:
        yield line.rstrip("\r\n")


@click.command("check")
@click.argument("targets", nargs=-1)
@click.option("--prompt", is_flag=True, help="Ask before restarting a target that needs it.")
@click.option("--status", "show_status", is_flag=True, help="Show transport details (single target only).")
@click.option(
    "--fallback/--no-fallback",
    "enable_fallback",
    default=None,
    help="Try remote registry + admin share when WinRM fails.",
)
@click.option("--workers", type=click.IntRange(1, 64), default=None, help="Targets checked in parallel.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds allowed per transport call.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output JSON lines.")
@click.option("--exit-code", is_flag=True, help="Exit 1 if a reboot is required, 3 if a target was denied.")
@click.option("--no-save", is_flag=True, help="Don't write the audit entry or last-run file.")
@click.pass_context
def check(
    ctx: click.Context,
    targets: tuple[str, ...],
    prompt: bool,
    show_status: bool,
    enable_fallback: bool | None,
    workers: int | None,
    timeout: float | None,
    as_json: bool,
    exit_code: bool,
    no_save: bool,
) -> None:
    """Check TARGETS for a pending reboot (stdin when none or '-')."""
    from rebootwatch.adapters import registry as transport_registry
    from rebootwatch.core.config.loader import ConfigError
    from rebootwatch.core.engine.executor import RunOptions
    from rebootwatch.core.use_cases.check import check_targets, resolve_settings, state_root
    from rebootwatch.ui.cli.render import confirm_restart, echo_result, echo_status, echo_summary

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        settings = resolve_settings(
            config_path,
            enable_fallback=enable_fallback,
            workers=workers,
            timeout_seconds=timeout,
        )
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    if not targets or targets == ("-",):
        if not targets and sys.stdin.isatty():
            raise click.UsageError("Give one or more targets, or pipe them on stdin.")
        if prompt:
            # Answers would be read from the same stream as the targets
            raise click.UsageError("--prompt needs targets on the command line, not stdin.")
        source = _stdin_targets()
    else:
        source = list(targets)

    options = RunOptions(
        prompt=prompt,
        show_status=show_status,
        enable_fallback=settings.enable_fallback,
        workers=settings.workers,
    )
    cancel = threading.Event()
    run = check_targets(
        source,
        options,
        settings,
        transports=transport_registry.build_transports(settings),
        confirm=confirm_restart if prompt else None,
        reporter=echo_status,
        root=None if no_save else state_root(config_path),
        cancel=cancel,
    )

    try:
        for result in run:
            if as_json:
                click.echo(json.dumps(result.to_record()))
            else:
                echo_result(result)
    except KeyboardInterrupt:
        cancel.set()
        click.secho("\n⚠️  Cancelled", fg="yellow", err=True)
        sys.exit(EXIT_CANCELLED)

    summary = run.summary
    if as_json:
        click.echo(json.dumps({"Summary": summary.to_record()}))
    elif not ctx.obj.get("quiet", False):
        echo_summary(summary)

    if exit_code:
        if summary.any_reboot_required:
            sys.exit(EXIT_REBOOT_REQUIRED)
        if summary.any_connection_denied:
            sys.exit(EXIT_DENIED)


@click.command("last")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--history",
    type=click.IntRange(min=1),
    default=None,
    help="Show the N most recent runs from the audit ledger instead.",
)
@click.pass_context
def last(ctx: click.Context, as_json: bool, history: int | None) -> None:
    """Show the results of the most recent check run."""
    from rebootwatch.core.config.loader import ConfigError
    from rebootwatch.core.persistence.last_run import DEFAULT_LAST_RUN_FILE, load_last_run
    from rebootwatch.core.use_cases.check import resolve_settings, state_root

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        settings = resolve_settings(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(EXIT_CONFIG_ERROR)

    state_dir = state_root(config_path) / settings.state_dir
    if history is not None:
        _show_history(state_dir, history, as_json)
        return

    last_run = load_last_run(state_dir / DEFAULT_LAST_RUN_FILE)

    if last_run is None:
        if as_json:
            click.echo(json.dumps({"error": "No previous run recorded"}))
        else:
            click.secho("📭 No previous run recorded", fg="yellow")
        sys.exit(EXIT_NO_PREVIOUS_RUN)

    if as_json:
        click.echo(json.dumps(last_run.model_dump(mode="json"), indent=2))
        return

    click.secho(f"\n📋 Last run {last_run.operation_id}", fg="cyan", bold=True)
    click.echo(f"   Finished: {last_run.finished_at}")
    for record in last_run.results:
        denied = record.get("RemoteConnectionDenied")
        marker = "⛔" if denied else {"True": "🔁", "False": "✅"}.get(record.get("RebootRequired"), "❓")
        line = f"   {marker} {record.get('Target')}: RebootRequired={record.get('RebootRequired')}"
        if denied:
            line += f" (denied: {record.get('RemoteConnectionDeniedClass')})"
        click.echo(line)
    for key, value in last_run.summary.items():
        click.echo(f"   {key}: {value}")
    click.echo()


def _show_history(state_dir: Path, n: int, as_json: bool) -> None:
    """Recent runs from the audit ledger, oldest first."""
    from rebootwatch.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditWriter

    audit = AuditWriter(state_dir / DEFAULT_AUDIT_FILE)
    entries = audit.read_recent(n)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        if not entries:
            sys.exit(EXIT_NO_PREVIOUS_RUN)
        return

    if not entries:
        click.secho("📭 No previous run recorded", fg="yellow")
        sys.exit(EXIT_NO_PREVIOUS_RUN)

    click.secho(f"\n📜 Last {len(entries)} run(s)", fg="cyan", bold=True)
    for entry in entries:
        color = "yellow" if entry.any_reboot_required else ("red" if entry.any_connection_denied else "green")
        click.secho(
            f"   {entry.timestamp}  {entry.operation_id}  "
            f"targets={len(entry.targets)} reboot={len(entry.reboot_required)} "
            f"denied={len(entry.denied)} unknown={len(entry.unknown)}",
            fg=color,
        )
        if entry.restarts_issued:
            click.echo(f"      restarted: {', '.join(entry.restarts_issued)}")
        if entry.restarts_failed:
            click.secho(f"      restart failed: {', '.join(entry.restarts_failed)}", fg="red")
    click.echo()
