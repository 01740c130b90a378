"""
Failure models — the closed taxonomy of transport failures.

Every transport error is mapped onto exactly one ``FailureClass``.
The severity tier only drives presentation (color, urgency); it never
changes what the engine does with the target.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class FailureClass(StrEnum):
    """Fixed set of transport failure categories."""

    NAME_RESOLUTION = "NameResolutionOrBadTarget"
    CONNECTION_BLOCKED = "ConnectionBlocked"
    CONNECTION_REFUSED = "ConnectionRefused"
    PROTOCOL_CLIENT = "ProtocolClientCannotProcess"
    ACCESS_DENIED = "AccessDenied"
    AUTH_OR_TRUST = "AuthOrTrustConfig"
    TIMEOUT = "Timeout"
    SESSION_OPEN_FAILED = "SessionOpenFailed"
    FALLBACK_FAILED = "FallbackFailed"
    UNKNOWN = "Unknown"


class Severity(StrEnum):
    """Display tier for a failure class."""

    SOFT = "soft"
    BLOCKING = "blocking"


_SOFT_CLASSES = frozenset({FailureClass.NAME_RESOLUTION})


def severity_of(failure_class: FailureClass) -> Severity:
    """Return the display tier for a failure class."""
    if failure_class in _SOFT_CLASSES:
        return Severity.SOFT
    return Severity.BLOCKING


class FailureInfo(BaseModel):
    """A classified transport failure. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    failure_class: FailureClass
    reason: str
    raw_detail: str = ""

    @property
    def severity(self) -> Severity:
        return severity_of(self.failure_class)

    @classmethod
    def fallback_failed(
        cls,
        primary: FailureInfo | None,
        registry_error: str | None,
        share_error: str | None,
    ) -> FailureInfo:
        """Build the failure recorded when primary and both fallbacks failed."""
        primary_class = primary.failure_class.value if primary else FailureClass.UNKNOWN.value
        reason = (
            f"Primary transport failed ({primary_class}); "
            f"registry fallback: {registry_error or 'no detail'}; "
            f"share fallback: {share_error or 'no detail'}"
        )
        return cls(
            failure_class=FailureClass.FALLBACK_FAILED,
            reason=reason,
            raw_detail=primary.raw_detail if primary else "",
        )
