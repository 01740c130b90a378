"""
Result models — what the engine hands back for each target.

``CheckResult`` is the per-target output unit. ``RunSummary`` is the
batch-wide accumulator: it is passed into the engine by reference,
reset at the start of every run, and only ever OR-accumulated.
"""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from rebootwatch.core.models.action import Receipt
from rebootwatch.core.models.failure import FailureClass, FailureInfo
from rebootwatch.core.models.signal import SignalName, TransportKind, TriState


class TransportAttempt(BaseModel):
    """One attempt to reach a target through one mechanism."""

    mechanism: TransportKind
    ok: bool
    failure: FailureInfo | None = None


class CheckResult(BaseModel):
    """Verdict for a single target.

    Invariants (enforced on construction):
        - denied => every signal is Unknown
        - reboot_required True => at least one signal is True
        - reboot_required False => every signal is False
    """

    target: str
    reboot_required: TriState = TriState.UNKNOWN
    signals: dict[SignalName, TriState] = Field(
        default_factory=lambda: {name: TriState.UNKNOWN for name in SignalName}
    )
    remote_connection_denied: bool = False
    denied_class: FailureClass | None = None
    denied_reason: str | None = None

    is_local: bool = False
    transport: TransportKind | None = None   # transport that produced the signals
    attempts: list[TransportAttempt] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_invariants(self) -> CheckResult:
        values = [self.signals.get(name, TriState.UNKNOWN) for name in SignalName]
        if self.remote_connection_denied and any(v.known for v in values):
            raise ValueError("denied result cannot carry a resolved signal")
        if self.reboot_required is TriState.TRUE and TriState.TRUE not in values:
            raise ValueError("reboot_required=True needs a True signal")
        if self.reboot_required is TriState.FALSE and any(v is not TriState.FALSE for v in values):
            raise ValueError("reboot_required=False needs every signal False")
        return self

    def signal(self, name: SignalName) -> TriState:
        return self.signals.get(name, TriState.UNKNOWN)

    def to_record(self) -> dict[str, Any]:
        """Flat output record, one per target."""
        return {
            "Target": self.target,
            "RebootRequired": self.reboot_required.value,
            "RegistryPending": self.signal(SignalName.REGISTRY_PENDING).value,
            "ServicingMarkerPresent": self.signal(SignalName.SERVICING_MARKER).value,
            "RemoteConnectionDenied": self.remote_connection_denied,
            "RemoteConnectionDeniedClass": self.denied_class.value if self.denied_class else "",
            "RemoteConnectionDeniedReason": self.denied_reason or "",
        }


class RunSummary(BaseModel):
    """Batch-wide flags for one invocation.

    Updates go through ``record()``, which holds a lock so concurrent
    workers can share one summary.
    """

    any_reboot_required: bool = False
    any_connection_denied: bool = False
    targets_checked: int = 0
    restart_receipts: list[Receipt] = Field(default_factory=list)

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def reset(self) -> None:
        """Clear every flag; called at the start of each run."""
        with self._lock:
            self.any_reboot_required = False
            self.any_connection_denied = False
            self.targets_checked = 0
            self.restart_receipts = []

    def record(self, result: CheckResult) -> None:
        """Fold one result into the summary."""
        with self._lock:
            self.targets_checked += 1
            if result.reboot_required is TriState.TRUE:
                self.any_reboot_required = True
            if result.remote_connection_denied:
                self.any_connection_denied = True

    def record_restart(self, receipt: Receipt) -> None:
        with self._lock:
            self.restart_receipts.append(receipt)

    @property
    def restart_failures(self) -> list[Receipt]:
        return [r for r in self.restart_receipts if r.failed]

    def to_record(self) -> dict[str, Any]:
        return {
            "AnyRebootRequired": self.any_reboot_required,
            "AnyConnectionDenied": self.any_connection_denied,
        }
