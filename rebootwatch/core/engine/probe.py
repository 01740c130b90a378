"""
Signal probe — read one pending-reboot indicator through one transport.

The probe is the signal-level error boundary: whatever the adapter
raises is caught here and turned into ``Unknown`` for that signal
alone. It never aborts probing of the other signal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from rebootwatch.adapters.base import ConfigStoreAdapter, FileProbeAdapter, RemoteSnapshot, TransportError
from rebootwatch.core.models.signal import SignalName, SignalReading, TransportKind, TriState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalLocations:
    """Where the two signals live on a Windows host."""

    registry_key: str
    registry_value: str
    marker_path: str

    @classmethod
    def from_settings(cls, settings: Any) -> SignalLocations:
        return cls(
            registry_key=settings.registry_key,
            registry_value=settings.registry_value,
            marker_path=settings.marker_path,
        )


def has_entries(value: Any) -> bool:
    """Whether a registry value holds at least one non-empty entry."""
    if value is None:
        return False
    if isinstance(value, bytes):
        return any(value.strip(b"\x00"))
    if isinstance(value, str):
        return bool(value.strip("\x00").strip())
    if isinstance(value, Sequence):
        return any(has_entries(item) for item in value)
    return bool(value)


def _error_text(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


def probe_registry_pending(
    store: ConfigStoreAdapter,
    target: str,
    locations: SignalLocations,
    transport: TransportKind,
) -> SignalReading:
    """True when the rename queue holds entries, False when empty or absent."""
    try:
        value = store.read_value(target, locations.registry_key, locations.registry_value)
    except Exception as e:
        logger.debug("%s: registry read via %s failed: %s", target, store.name, e)
        return SignalReading(
            signal=SignalName.REGISTRY_PENDING,
            value=TriState.UNKNOWN,
            transport=transport,
            error=_error_text(e),
        )
    return SignalReading(
        signal=SignalName.REGISTRY_PENDING,
        value=TriState.from_bool(has_entries(value)),
        transport=transport,
    )


def probe_servicing_marker(
    files: FileProbeAdapter,
    target: str,
    locations: SignalLocations,
    transport: TransportKind,
) -> SignalReading:
    """True when the servicing marker file exists under the system root."""
    try:
        present = files.path_exists(target, locations.marker_path)
    except Exception as e:
        logger.debug("%s: marker check via %s failed: %s", target, files.name, e)
        return SignalReading(
            signal=SignalName.SERVICING_MARKER,
            value=TriState.UNKNOWN,
            transport=transport,
            error=_error_text(e),
        )
    return SignalReading(
        signal=SignalName.SERVICING_MARKER,
        value=TriState.from_bool(bool(present)),
        transport=transport,
    )


def probe_signal(
    signal: SignalName,
    target: str,
    locations: SignalLocations,
    transport: TransportKind,
    store: ConfigStoreAdapter | None = None,
    files: FileProbeAdapter | None = None,
) -> SignalReading:
    """Probe ``signal`` with whichever adapter handles it."""
    if signal is SignalName.REGISTRY_PENDING:
        if store is None:
            raise ValueError("RegistryPending needs a config store adapter")
        return probe_registry_pending(store, target, locations, transport)
    if files is None:
        raise ValueError("ServicingMarkerPresent needs a file probe adapter")
    return probe_servicing_marker(files, target, locations, transport)


# ── Snapshot replay ─────────────────────────────────────────────
#
# The primary transport reads both signals in one round trip. These
# adapters replay that snapshot so its halves go through the same
# probe functions as every other transport.


class SnapshotStore(ConfigStoreAdapter):
    """Config store answering from a RemoteSnapshot."""

    def __init__(self, snapshot: RemoteSnapshot):
        self._snapshot = snapshot

    @property
    def name(self) -> str:
        return "snapshot-store"

    def is_available(self) -> bool:
        return True

    def read_value(self, target: str, key_path: str, value_name: str) -> Any:
        if self._snapshot.registry_error:
            raise TransportError(self._snapshot.registry_error)
        return self._snapshot.registry_value


class SnapshotFiles(FileProbeAdapter):
    """File probe answering from a RemoteSnapshot."""

    def __init__(self, snapshot: RemoteSnapshot):
        self._snapshot = snapshot

    @property
    def name(self) -> str:
        return "snapshot-files"

    def is_available(self) -> bool:
        return True

    def path_exists(self, target: str, relative_path: str) -> bool:
        if self._snapshot.marker_error:
            raise TransportError(self._snapshot.marker_error)
        if self._snapshot.marker_present is None:
            raise TransportError("Remote check did not report the servicing marker")
        return self._snapshot.marker_present
