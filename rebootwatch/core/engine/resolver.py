"""
Transport resolver — reach one target and collect both signals.

States:
    LOCAL              → probe in-process; terminal (never denied)
    NAME_CHECK         → resolve the name; failure is logged, not fatal
    PRIMARY            → WinRM preflight + one round trip for both signals
    FALLBACK_DECISION  → DENIED unless fallback is enabled
    FALLBACK           → remote registry and admin share, each tried once
    DONE / DENIED      → terminal

Transitions:
    start → LOCAL                   target is this machine
    start → NAME_CHECK → PRIMARY    otherwise
    PRIMARY → DONE                  at least one signal resolved
    PRIMARY → FALLBACK_DECISION     preflight/round trip failed, or nothing resolved
    FALLBACK_DECISION → DENIED      fallback disabled
    FALLBACK_DECISION → FALLBACK    fallback enabled
    FALLBACK → DONE                 at least one fallback signal resolved
    FALLBACK → DENIED               both fallback signals Unknown

Every state is entered at most once, so a target always terminates.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import StrEnum

from rebootwatch.adapters.registry import TransportSet
from rebootwatch.core.engine.classifier import classify
from rebootwatch.core.engine.probe import (
    SignalLocations,
    SnapshotFiles,
    SnapshotStore,
    probe_registry_pending,
    probe_servicing_marker,
)
from rebootwatch.core.models.failure import FailureInfo
from rebootwatch.core.models.result import TransportAttempt
from rebootwatch.core.models.signal import SignalName, SignalReading, TransportKind, TriState

logger = logging.getLogger(__name__)


class ResolveState(StrEnum):
    """States of the per-target transport state machine."""

    START = "start"
    LOCAL = "local"
    NAME_CHECK = "name_check"
    PRIMARY = "primary"
    FALLBACK_DECISION = "fallback_decision"
    FALLBACK = "fallback"
    DONE = "done"
    DENIED = "denied"


TERMINAL_STATES = frozenset({ResolveState.DONE, ResolveState.DENIED})


class ResolveCancelled(Exception):
    """Raised when cancellation is requested before a target is attempted."""


@dataclass
class Resolution:
    """Outcome of resolving one target."""

    target: str
    signals: dict[SignalName, TriState] = field(
        default_factory=lambda: {name: TriState.UNKNOWN for name in SignalName}
    )
    connection_denied: bool = False
    failure: FailureInfo | None = None
    is_local: bool = False
    transport: TransportKind | None = None
    attempts: list[TransportAttempt] = field(default_factory=list)
    path: list[ResolveState] = field(default_factory=list)


def _resolved_any(readings: list[SignalReading]) -> bool:
    return any(r.value.known for r in readings)


class TransportResolver:
    """Drives the state machine for one target at a time.

    Stateless between targets: every call to ``resolve`` works on a
    fresh ``Resolution``, so one target can never leak into another.

    Args:
        transports: The adapters to use.
        locations: Registry key/value and marker path.
    """

    def __init__(self, transports: TransportSet, locations: SignalLocations):
        self._transports = transports
        self._locations = locations

    def resolve(
        self,
        target: str,
        enable_fallback: bool = False,
        cancel: threading.Event | None = None,
    ) -> Resolution:
        """Run the state machine for ``target`` until a terminal state."""
        if cancel is not None and cancel.is_set():
            raise ResolveCancelled(target)

        run = _Run(target, enable_fallback, self._transports, self._locations)
        state = ResolveState.START
        while state not in TERMINAL_STATES:
            run.result.path.append(state)
            state = run.step(state)
        run.result.path.append(state)

        if state is ResolveState.DENIED:
            run.result.connection_denied = True
            run.result.signals = {name: TriState.UNKNOWN for name in SignalName}
            run.result.transport = None
        return run.result


class _Run:
    """One pass of the state machine. Holds the per-target scratch state."""

    def __init__(
        self,
        target: str,
        enable_fallback: bool,
        transports: TransportSet,
        locations: SignalLocations,
    ):
        self.target = target
        self.enable_fallback = enable_fallback
        self.transports = transports
        self.locations = locations
        self.result = Resolution(target=target)
        self.primary_failure: FailureInfo | None = None

    def step(self, state: ResolveState) -> ResolveState:
        handler = {
            ResolveState.START: self._start,
            ResolveState.LOCAL: self._local,
            ResolveState.NAME_CHECK: self._name_check,
            ResolveState.PRIMARY: self._primary,
            ResolveState.FALLBACK_DECISION: self._fallback_decision,
            ResolveState.FALLBACK: self._fallback,
        }[state]
        return handler()

    def _apply(self, readings: list[SignalReading], transport: TransportKind) -> None:
        for reading in readings:
            self.result.signals[reading.signal] = reading.value
        self.result.transport = transport

    def _attempt(self, mechanism: TransportKind, failure: FailureInfo | None = None) -> None:
        self.result.attempts.append(
            TransportAttempt(mechanism=mechanism, ok=failure is None, failure=failure)
        )

    # ── States ──────────────────────────────────────────────────

    def _start(self) -> ResolveState:
        if self.transports.is_local(self.target):
            return ResolveState.LOCAL
        return ResolveState.NAME_CHECK

    def _local(self) -> ResolveState:
        self.result.is_local = True
        kind = TransportKind.LOCAL
        readings = [
            probe_registry_pending(self.transports.local_store, self.target, self.locations, kind),
            probe_servicing_marker(self.transports.local_files, self.target, self.locations, kind),
        ]
        self._apply(readings, kind)
        self._attempt(kind)
        return ResolveState.DONE

    def _name_check(self) -> ResolveState:
        try:
            self.transports.name_resolver(self.target)
        except Exception as e:
            failure = classify(e)
            logger.warning(
                "%s: name resolution failed (%s), trying the management transport anyway",
                self.target,
                e,
            )
            self._attempt(TransportKind.NAME_CHECK, failure)
        else:
            self._attempt(TransportKind.NAME_CHECK)
        return ResolveState.PRIMARY

    def _primary(self) -> ResolveState:
        session = self.transports.session
        kind = TransportKind.PRIMARY
        try:
            session.preflight(self.target)
            snapshot = session.collect(
                self.target,
                self.locations.registry_key,
                self.locations.registry_value,
                self.locations.marker_path,
            )
        except Exception as e:
            self.primary_failure = classify(e)
            self._attempt(kind, self.primary_failure)
            logger.info(
                "%s: primary transport failed [%s] %s",
                self.target,
                self.primary_failure.failure_class,
                e,
            )
            return ResolveState.FALLBACK_DECISION

        readings = [
            probe_registry_pending(SnapshotStore(snapshot), self.target, self.locations, kind),
            probe_servicing_marker(SnapshotFiles(snapshot), self.target, self.locations, kind),
        ]
        if not _resolved_any(readings):
            # Round trip completed but neither read worked on the far side.
            # A transport that yields no determinate signal has not reached
            # the target in any useful sense, so it counts as failed.
            errors = "; ".join(r.error for r in readings if r.error)
            self.primary_failure = classify(errors)
            self._attempt(kind, self.primary_failure)
            logger.info("%s: primary transport resolved no signal: %s", self.target, errors)
            return ResolveState.FALLBACK_DECISION

        self._apply(readings, kind)
        self._attempt(kind)
        return ResolveState.DONE

    def _fallback_decision(self) -> ResolveState:
        if self.enable_fallback:
            logger.info("%s: falling back to remote registry and admin share", self.target)
            return ResolveState.FALLBACK
        self.result.failure = self.primary_failure
        return ResolveState.DENIED

    def _fallback(self) -> ResolveState:
        registry = probe_registry_pending(
            self.transports.fallback_store,
            self.target,
            self.locations,
            TransportKind.FALLBACK_REGISTRY,
        )
        self._attempt(
            TransportKind.FALLBACK_REGISTRY,
            classify(registry.error) if registry.error else None,
        )

        share = probe_servicing_marker(
            self.transports.fallback_files,
            self.target,
            self.locations,
            TransportKind.FALLBACK_SHARE,
        )
        self._attempt(
            TransportKind.FALLBACK_SHARE,
            classify(share.error) if share.error else None,
        )

        readings = [registry, share]
        if not _resolved_any(readings):
            self.result.failure = FailureInfo.fallback_failed(
                self.primary_failure, registry.error, share.error
            )
            logger.info("%s: both fallback paths failed", self.target)
            return ResolveState.DENIED

        # Degraded but usable: not counted as denied
        for reading in readings:
            self.result.signals[reading.signal] = reading.value
        resolved = [r.transport for r in readings if r.value.known]
        self.result.transport = resolved[0]
        return ResolveState.DONE
