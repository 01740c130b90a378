"""
Check use case — from a list of target names to persisted results.

Loads settings, builds the transports and the engine, streams the
results to the caller, and when the stream is exhausted writes the
audit entry and the last-run mirror.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rebootwatch.adapters.registry import TransportSet
from rebootwatch.core.config.loader import ConfigError, Settings, find_config_file, load_settings
from rebootwatch.core.engine.executor import ConfirmFn, RebootEngine, ReporterFn, RunOptions
from rebootwatch.core.engine.probe import SignalLocations
from rebootwatch.core.models.result import CheckResult, RunSummary
from rebootwatch.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditEntry, AuditWriter, generate_operation_id
from rebootwatch.core.persistence.last_run import DEFAULT_LAST_RUN_FILE, LastRun, save_last_run

logger = logging.getLogger(__name__)


def resolve_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Load settings and apply non-None overrides (CLI flags win).

    Raises:
        ConfigError: on an invalid file or invalid override value.
    """
    settings = load_settings(config_path)
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return settings
    try:
        return Settings.model_validate({**settings.model_dump(), **updates})
    except ValidationError as e:
        raise ConfigError(f"Invalid option: {e}") from e


def state_root(config_path: Path | None = None) -> Path:
    """Directory that ``state_dir`` is relative to."""
    config_path = config_path or find_config_file()
    return config_path.parent.resolve() if config_path else Path.cwd()


class CheckRun:
    """One invocation: iterate it for results, then read ``summary``.

    Persistence happens once the iteration has been exhausted; a
    caller that stops early gets no audit entry.
    """

    def __init__(
        self,
        engine: RebootEngine,
        targets: Iterable[str],
        options: RunOptions,
        settings: Settings,
        state_dir: Path | None = None,
        cancel: threading.Event | None = None,
    ):
        self.operation_id = generate_operation_id()
        self.summary = RunSummary()
        self.results: list[CheckResult] = []
        self.completed = False
        self.duration_ms = 0
        self._engine = engine
        self._targets = targets
        self._options = options
        self._settings = settings
        self._state_dir = state_dir
        self._cancel = cancel

    def __iter__(self) -> Iterator[CheckResult]:
        start = time.monotonic()
        self._reset_mirror()

        for result in self._engine.run(self._targets, self._options, self.summary, self._cancel):
            self.results.append(result)
            yield result

        self.duration_ms = int((time.monotonic() - start) * 1000)
        self.completed = True
        self._persist()

    def _reset_mirror(self) -> None:
        if self._state_dir is None or not self._settings.save_last_run:
            return
        try:
            save_last_run(LastRun(operation_id=self.operation_id), self._state_dir / DEFAULT_LAST_RUN_FILE)
        except OSError as e:
            logger.warning("Cannot reset last-run file: %s", e)

    def _persist(self) -> None:
        if self._state_dir is None:
            return

        if self._settings.audit:
            entry = AuditEntry.from_run(self.operation_id, self.results, self.summary, self.duration_ms)
            AuditWriter(self._state_dir / DEFAULT_AUDIT_FILE).write(entry)

        if self._settings.save_last_run:
            try:
                save_last_run(
                    LastRun.from_run(self.operation_id, self.results, self.summary),
                    self._state_dir / DEFAULT_LAST_RUN_FILE,
                )
            except OSError as e:
                logger.error("Failed to save last run: %s", e)


def check_targets(
    targets: Iterable[str],
    options: RunOptions,
    settings: Settings,
    transports: TransportSet | None = None,
    confirm: ConfirmFn | None = None,
    reporter: ReporterFn | None = None,
    root: Path | None = None,
    cancel: threading.Event | None = None,
) -> CheckRun:
    """Prepare a run over ``targets``.

    Args:
        targets: Target names; a non-sequence iterable counts as streamed.
        options: Prompt/status/fallback/worker switches.
        settings: Resolved settings.
        transports: Adapters to use (production adapters when None).
        confirm: Restart confirmation callback.
        reporter: Status line callback.
        root: Base directory for ``settings.state_dir``; None disables persistence.
        cancel: Cancellation event, checked between targets.

    Returns:
        A CheckRun to iterate.
    """
    if transports is None:
        from rebootwatch.adapters.registry import build_transports

        transports = build_transports(settings)

    engine = RebootEngine(
        transports,
        SignalLocations.from_settings(settings),
        confirm=confirm,
        reporter=reporter,
    )
    state_dir = root / settings.state_dir if root is not None else None
    return CheckRun(engine, targets, options, settings, state_dir=state_dir, cancel=cancel)
