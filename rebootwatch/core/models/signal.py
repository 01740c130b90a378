"""
Signal models — the tri-state value and the canonical signal names.

A signal is one independently-checkable indicator of a pending reboot.
Its outcome is never a plain bool: ``UNKNOWN`` means the check itself
failed, which is not the same thing as ``FALSE``.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class TriState(StrEnum):
    """A value in {True, False, Unknown}."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"

    @classmethod
    def from_bool(cls, value: bool | None) -> TriState:
        """Map a bool to TRUE/FALSE and None to UNKNOWN."""
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    @property
    def known(self) -> bool:
        return self is not TriState.UNKNOWN


class SignalName(StrEnum):
    """The two canonical pending-reboot indicators."""

    REGISTRY_PENDING = "RegistryPending"
    SERVICING_MARKER = "ServicingMarkerPresent"


class TransportKind(StrEnum):
    """Mechanisms a signal can be read through."""

    LOCAL = "local"
    NAME_CHECK = "name-check"
    PRIMARY = "primary"
    FALLBACK_REGISTRY = "fallback-registry"
    FALLBACK_SHARE = "fallback-share"


class SignalReading(BaseModel):
    """Outcome of probing one signal through one transport."""

    signal: SignalName
    value: TriState
    transport: TransportKind
    error: str | None = None   # set only when value is UNKNOWN
