"""
Domain models — Pydantic types for the reboot checker.

    from rebootwatch.core.models import CheckResult, RunSummary, TriState
"""

from rebootwatch.core.models.action import Receipt
from rebootwatch.core.models.failure import FailureClass, FailureInfo, Severity, severity_of
from rebootwatch.core.models.result import CheckResult, RunSummary, TransportAttempt
from rebootwatch.core.models.signal import SignalName, SignalReading, TransportKind, TriState

__all__ = [
    "CheckResult",
    "FailureClass",
    "FailureInfo",
    "Receipt",
    "RunSummary",
    "Severity",
    "SignalName",
    "SignalReading",
    "TransportAttempt",
    "TransportKind",
    "TriState",
    "severity_of",
]
