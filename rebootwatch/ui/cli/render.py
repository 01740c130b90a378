"""
Console rendering — the presentation adapter for check results.

The engine returns structured CheckResult values; everything about
colors, icons and wording lives here.
"""

from __future__ import annotations

import threading

import click

from rebootwatch.core.models.failure import Severity
from rebootwatch.core.models.result import CheckResult, RunSummary
from rebootwatch.core.models.signal import SignalName, TriState

_VERDICT_STYLE = {
    TriState.TRUE: ("🔁", "reboot required", "yellow"),
    TriState.FALSE: ("✅", "no reboot pending", "green"),
    TriState.UNKNOWN: ("❓", "unknown", "white"),
}

_SEVERITY_COLOR = {Severity.SOFT: "yellow", Severity.BLOCKING: "red"}

_echo_lock = threading.Lock()


def result_line(result: CheckResult) -> tuple[str, str]:
    """One-line verdict for a target, and its color."""
    if result.remote_connection_denied:
        return f"⛔ {result.target}: connection denied ({result.denied_class})", "red"

    icon, label, color = _VERDICT_STYLE[result.reboot_required]
    signals = ", ".join(
        f"{name.value}={result.signal(name).value}" for name in SignalName
    )
    return f"{icon} {result.target}: {label}  [{signals}]", color


def echo_result(result: CheckResult) -> None:
    text, color = result_line(result)
    with _echo_lock:
        click.secho(text, fg=color)


def echo_status(result: CheckResult) -> None:
    """Detailed progress lines for a single target (stderr)."""
    lines: list[tuple[str, str | None]] = []
    where = "local" if result.is_local else (result.transport.value if result.transport else "none")
    lines.append((f"   {result.target} — checked via {where}", "cyan"))

    for attempt in result.attempts:
        if attempt.ok:
            lines.append((f"     ✓ {attempt.mechanism.value}", None))
            continue
        failure = attempt.failure
        assert failure is not None  # set on every failed attempt
        lines.append((
            f"     ✗ {attempt.mechanism.value}: {failure.failure_class.value} — {failure.reason}",
            _SEVERITY_COLOR[failure.severity],
        ))

    if result.remote_connection_denied and result.denied_reason:
        lines.append((f"     Reason: {result.denied_reason}", "red"))

    with _echo_lock:
        for text, color in lines:
            click.secho(text, fg=color, err=True)


def echo_summary(summary: RunSummary) -> None:
    click.echo()
    reboot_color = "yellow" if summary.any_reboot_required else "green"
    denied_color = "red" if summary.any_connection_denied else "green"
    click.secho(f"   Targets checked: {summary.targets_checked}", bold=True)
    click.secho(f"   Any reboot required: {summary.any_reboot_required}", fg=reboot_color)
    click.secho(f"   Any connection denied: {summary.any_connection_denied}", fg=denied_color)

    for receipt in summary.restart_receipts:
        if receipt.ok:
            click.secho(f"   🔄 Restart issued: {receipt.target}", fg="cyan")
        elif receipt.status == "skipped":
            click.secho(f"   ⏭️  Restart declined: {receipt.target}")
        else:
            click.secho(f"   ❌ Restart failed: {receipt.target} — {receipt.error}", fg="red")


def confirm_restart(target: str) -> bool:
    """Ask before restarting ``target``. Defaults to no."""
    return click.confirm(f"🔁 {target} needs a reboot. Restart it now?", default=False, err=True)
