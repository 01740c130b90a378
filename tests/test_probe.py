"""
Tests for the signal probe — value evaluation and error downgrade.
"""

import pytest

from rebootwatch.adapters.base import RemoteSnapshot, TransportError
from rebootwatch.adapters.mock import MockFiles, MockStore
from rebootwatch.core.engine.probe import (
    SnapshotFiles,
    SnapshotStore,
    has_entries,
    probe_registry_pending,
    probe_servicing_marker,
    probe_signal,
)
from rebootwatch.core.models.signal import SignalName, TransportKind, TriState

LOCAL = TransportKind.LOCAL


class TestHasEntries:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, False),
            ([], False),
            ([""], False),
            (["", ""], False),
            (["\\??\\C:\\Windows\\Temp\\a.tmp", ""], True),
            ("", False),
            ("\x00\x00", False),
            ("\\??\\C:\\x", True),
            (b"", False),
            (b"\x00\x00", False),
            (b"\x41\x00", True),
            (1, True),
            (0, False),
        ],
    )
    def test_values(self, value, expected):
        assert has_entries(value) is expected


class TestProbeRegistryPending:
    def test_present(self, locations):
        store = MockStore(default=["\\??\\C:\\pending.dll"])
        reading = probe_registry_pending(store, "srv", locations, LOCAL)
        assert reading.value is TriState.TRUE
        assert reading.signal is SignalName.REGISTRY_PENDING
        assert reading.error is None

    def test_absent_value(self, locations):
        reading = probe_registry_pending(MockStore(default=None), "srv", locations, LOCAL)
        assert reading.value is TriState.FALSE

    def test_present_but_empty(self, locations):
        reading = probe_registry_pending(MockStore(default=[]), "srv", locations, LOCAL)
        assert reading.value is TriState.FALSE

    def test_read_error_is_unknown(self, locations):
        store = MockStore()
        store.set_failure("srv", PermissionError("Access is denied"))
        reading = probe_registry_pending(store, "srv", locations, LOCAL)
        assert reading.value is TriState.UNKNOWN
        assert "Access is denied" in reading.error

    def test_error_without_message_uses_type_name(self, locations):
        store = MockStore()
        store.set_failure("srv", TimeoutError())
        reading = probe_registry_pending(store, "srv", locations, LOCAL)
        assert reading.error == "TimeoutError"


class TestProbeServicingMarker:
    def test_exists(self, locations):
        reading = probe_servicing_marker(MockFiles(default=True), "srv", locations, LOCAL)
        assert reading.value is TriState.TRUE
        assert reading.signal is SignalName.SERVICING_MARKER

    def test_missing(self, locations):
        reading = probe_servicing_marker(MockFiles(default=False), "srv", locations, LOCAL)
        assert reading.value is TriState.FALSE

    def test_error_is_unknown(self, locations):
        files = MockFiles()
        files.set_failure("srv", OSError("The network path was not found"))
        reading = probe_servicing_marker(files, "srv", locations, TransportKind.FALLBACK_SHARE)
        assert reading.value is TriState.UNKNOWN
        assert reading.transport is TransportKind.FALLBACK_SHARE


class TestProbeSignal:
    def test_dispatch(self, locations):
        store = MockStore(default=["x"])
        files = MockFiles(default=False)
        assert probe_signal(SignalName.REGISTRY_PENDING, "srv", locations, LOCAL, store=store).value is TriState.TRUE
        assert probe_signal(SignalName.SERVICING_MARKER, "srv", locations, LOCAL, files=files).value is TriState.FALSE

    def test_missing_adapter(self, locations):
        with pytest.raises(ValueError):
            probe_signal(SignalName.REGISTRY_PENDING, "srv", locations, LOCAL)


class TestSnapshotReplay:
    def test_partial_failure_only_downgrades_failed_half(self, locations):
        snapshot = RemoteSnapshot(registry_error="Access is denied", marker_present=True)
        reg = probe_registry_pending(SnapshotStore(snapshot), "srv", locations, TransportKind.PRIMARY)
        marker = probe_servicing_marker(SnapshotFiles(snapshot), "srv", locations, TransportKind.PRIMARY)
        assert reg.value is TriState.UNKNOWN
        assert marker.value is TriState.TRUE

    def test_missing_marker_report_is_unknown(self, locations):
        files = SnapshotFiles(RemoteSnapshot(registry_value=[]))
        with pytest.raises(TransportError):
            files.path_exists("srv", locations.marker_path)
