"""
Engine executor — the orchestration loop over a batch of targets.

Flow per target:
    target → transport resolver → tri-state resolver → CheckResult
           → summary → (status line) → (confirmed restart) → yield

Results are yielded one at a time, in input order. With ``workers``
above one the targets are resolved on a bounded thread pool, but a
result is only handed out once it is complete, and everything after
resolution (summary, status line, restart prompt) happens on the
consuming thread.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from rebootwatch.adapters.registry import TransportSet
from rebootwatch.core.engine.classifier import classify
from rebootwatch.core.engine.probe import SignalLocations
from rebootwatch.core.engine.resolver import ResolveCancelled, TransportResolver
from rebootwatch.core.engine.tristate import resolve_all
from rebootwatch.core.models.action import Receipt
from rebootwatch.core.models.result import CheckResult, RunSummary
from rebootwatch.core.models.signal import SignalName, TriState

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]
ReporterFn = Callable[[CheckResult], None]

_MARKERS = {TriState.TRUE: "✗", TriState.FALSE: "✓", TriState.UNKNOWN: "?"}


@dataclass
class RunOptions:
    """Per-invocation switches."""

    prompt: bool = False
    show_status: bool = False
    enable_fallback: bool = False
    workers: int = 1


def status_enabled(show_status: bool, target_count: int | None, streaming: bool) -> bool:
    """Whether per-target status lines should be printed.

    Only for a single, non-streamed target. Batches and piped input
    stay quiet. This never changes what the engine returns.
    """
    if not show_status or streaming:
        return False
    return target_count is not None and target_count <= 1


def _clean(targets: Iterable[str]) -> Iterator[str]:
    """Trimmed targets; blank entries are skipped."""
    for target in targets:
        if target is None:
            continue
        name = str(target).strip()
        if name:
            yield name


class RebootEngine:
    """Checks targets for pending reboots.

    Args:
        transports: Adapters to reach targets through.
        locations: Where the two signals live.
        confirm: Asked ``confirm(target)`` before any restart.
        reporter: Receives results for status lines, when enabled.
    """

    def __init__(
        self,
        transports: TransportSet,
        locations: SignalLocations,
        confirm: ConfirmFn | None = None,
        reporter: ReporterFn | None = None,
    ):
        self._transports = transports
        self._resolver = TransportResolver(transports, locations)
        self._confirm = confirm
        self._reporter = reporter
        self._last_summary = RunSummary()

    @property
    def last_summary(self) -> RunSummary:
        """Summary of the most recent (or current) run."""
        return self._last_summary

    # ── Single target ───────────────────────────────────────────

    def check_target(
        self,
        target: str,
        enable_fallback: bool = False,
        cancel: threading.Event | None = None,
    ) -> CheckResult:
        """Resolve one target into a CheckResult.

        Raises:
            ResolveCancelled: if ``cancel`` was set before the target started.
        """
        try:
            resolution = self._resolver.resolve(target, enable_fallback, cancel)
        except ResolveCancelled:
            raise
        except Exception as e:
            # A bug in an adapter must not take down the batch
            logger.exception("%s: unexpected error while checking", target)
            failure = classify(e)
            try:
                local = self._transports.is_local(target)
            except Exception:
                local = False
            return CheckResult(
                target=target,
                remote_connection_denied=not local,
                denied_class=None if local else failure.failure_class,
                denied_reason=None if local else failure.reason,
                is_local=local,
            )

        verdict = resolve_all(resolution.signals[name] for name in SignalName)
        failure = resolution.failure if resolution.connection_denied else None
        return CheckResult(
            target=target,
            reboot_required=verdict,
            signals=dict(resolution.signals),
            remote_connection_denied=resolution.connection_denied,
            denied_class=failure.failure_class if failure else None,
            denied_reason=failure.reason if failure else None,
            is_local=resolution.is_local,
            transport=resolution.transport,
            attempts=list(resolution.attempts),
        )

    # ── Batch ───────────────────────────────────────────────────

    def run(
        self,
        targets: Iterable[str],
        options: RunOptions | None = None,
        summary: RunSummary | None = None,
        cancel: threading.Event | None = None,
    ) -> Iterator[CheckResult]:
        """Check every target, yielding results in input order.

        Args:
            targets: A sequence, or any iterable (treated as streamed input).
            options: Prompt/status/fallback/worker switches.
            summary: Accumulator to fill. Reset before the first target.
            cancel: When set, no further targets are started.
        """
        options = options or RunOptions()
        summary = summary if summary is not None else RunSummary()
        summary.reset()
        self._last_summary = summary

        if isinstance(targets, str):
            targets = [targets]
        streaming = not isinstance(targets, Sequence)
        if streaming:
            cleaned: Iterable[str] = _clean(targets)
            count = None
        else:
            cleaned = list(_clean(targets))
            count = len(cleaned)

        report = self._reporter is not None and status_enabled(
            options.show_status, count, streaming
        )

        if options.workers > 1:
            results = self._run_pooled(cleaned, options, cancel)
        else:
            results = self._run_serial(cleaned, options, cancel)

        for result in results:
            yield self._finish(result, options, summary, report)

        logger.info(
            "Run complete: %d target(s), reboot required=%s, denied=%s",
            summary.targets_checked,
            summary.any_reboot_required,
            summary.any_connection_denied,
        )

    def _run_serial(
        self,
        targets: Iterable[str],
        options: RunOptions,
        cancel: threading.Event | None,
    ) -> Iterator[CheckResult]:
        for target in targets:
            if cancel is not None and cancel.is_set():
                logger.info("Cancelled before %s", target)
                return
            yield self.check_target(target, options.enable_fallback)

    def _run_pooled(
        self,
        targets: Iterable[str],
        options: RunOptions,
        cancel: threading.Event | None,
    ) -> Iterator[CheckResult]:
        pending: deque[Future[CheckResult]] = deque()
        with ThreadPoolExecutor(
            max_workers=options.workers,
            thread_name_prefix="rebootwatch",
        ) as pool:
            for target in targets:
                if cancel is not None and cancel.is_set():
                    logger.info("Cancelled before %s", target)
                    break
                pending.append(
                    pool.submit(self.check_target, target, options.enable_fallback, cancel)
                )
                if len(pending) >= options.workers:
                    result = _collect(pending.popleft())
                    if result is not None:
                        yield result

            while pending:
                future = pending.popleft()
                if cancel is not None and cancel.is_set() and future.cancel():
                    continue
                result = _collect(future)
                if result is not None:
                    yield result

    # ── Post-processing (consumer thread) ──────────────────────

    def _finish(
        self,
        result: CheckResult,
        options: RunOptions,
        summary: RunSummary,
        report: bool,
    ) -> CheckResult:
        summary.record(result)
        logger.info(
            "%s %s → reboot required: %s%s",
            _MARKERS[result.reboot_required],
            result.target,
            result.reboot_required,
            f" (denied: {result.denied_class})" if result.remote_connection_denied else "",
        )

        if report:
            try:
                self._reporter(result)  # type: ignore[misc]
            except Exception as e:
                logger.warning("Status reporter failed for %s: %s", result.target, e)

        if options.prompt and result.reboot_required is TriState.TRUE:
            self._offer_restart(result, summary)

        return result

    def _offer_restart(self, result: CheckResult, summary: RunSummary) -> None:
        if self._confirm is None:
            logger.warning("%s needs a reboot but no confirmation prompt is wired", result.target)
            return

        try:
            confirmed = bool(self._confirm(result.target))
        except Exception as e:
            logger.warning("Restart prompt for %s failed: %s", result.target, e)
            confirmed = False

        restarter = self._transports.restarter
        if not confirmed:
            logger.info("%s: restart declined", result.target)
            summary.record_restart(
                Receipt.skip(adapter=restarter.name, target=result.target, reason="declined")
            )
            return

        try:
            receipt = restarter.restart(result.target, local=result.is_local)
        except Exception as e:
            # Restart adapters should never raise
            receipt = Receipt.failure(
                adapter=restarter.name,
                target=result.target,
                error=f"Unexpected error: {e}",
            )

        summary.record_restart(receipt)
        if receipt.failed:
            logger.warning("Restart of %s failed: %s", result.target, receipt.error)
        else:
            logger.info("Restart issued for %s", result.target)


def _collect(future: Future[CheckResult]) -> CheckResult | None:
    """Result of a finished future; None for a target that never started."""
    try:
        return future.result()
    except ResolveCancelled:
        return None
