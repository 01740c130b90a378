"""
Tests for the transport resolver — local, primary, fallback and denial paths.
"""

import threading

import pytest

from rebootwatch.adapters.base import RemoteSnapshot, TransportError
from rebootwatch.core.engine.resolver import ResolveCancelled, ResolveState, TransportResolver
from rebootwatch.core.models.failure import FailureClass
from rebootwatch.core.models.signal import SignalName, TransportKind, TriState

REG = SignalName.REGISTRY_PENDING
MARKER = SignalName.SERVICING_MARKER

WINRM_BLOCKED = TransportError(
    "WinRM cannot complete the operation. Verify that the specified computer name is valid, "
    "that the computer is accessible over the network, and that a firewall exception for the "
    "WinRM service is enabled."
)


@pytest.fixture
def resolver(transports, locations) -> TransportResolver:
    return TransportResolver(transports, locations)


# ── Local ────────────────────────────────────────────────────────────


class TestLocal:
    def test_registry_pending_marker_absent(self, resolver, transports):
        transports.local_store.set_response("localhost", ["\\??\\C:\\Windows\\Temp\\x.tmp"])
        res = resolver.resolve("localhost")
        assert res.is_local
        assert res.signals == {REG: TriState.TRUE, MARKER: TriState.FALSE}
        assert not res.connection_denied
        assert res.path == [ResolveState.START, ResolveState.LOCAL, ResolveState.DONE]

    def test_never_touches_remote_transports(self, resolver, transports, name_resolver):
        resolver.resolve("this-pc")
        assert name_resolver.calls == []
        assert transports.session.preflight_log == []
        assert transports.fallback_store.call_count == 0

    def test_local_failures_are_unknown_not_denied(self, resolver, transports):
        transports.local_store.set_failure(".", PermissionError("Access is denied"))
        transports.local_files.set_failure(".", OSError("boom"))
        res = resolver.resolve(".", enable_fallback=True)
        assert res.signals == {REG: TriState.UNKNOWN, MARKER: TriState.UNKNOWN}
        assert not res.connection_denied
        assert res.failure is None

    def test_case_insensitive(self, resolver):
        assert resolver.resolve("LocalHost").is_local


# ── Name check ───────────────────────────────────────────────────────


class TestNameCheck:
    def test_resolution_failure_is_not_fatal(self, resolver, transports, name_resolver):
        name_resolver.unresolvable.add("srv01")
        transports.session.set_response("srv01", RemoteSnapshot(registry_value=["x"], marker_present=False))
        res = resolver.resolve("srv01")
        assert res.signals[REG] is TriState.TRUE
        assert not res.connection_denied
        name_attempt = res.attempts[0]
        assert name_attempt.mechanism is TransportKind.NAME_CHECK
        assert not name_attempt.ok
        assert name_attempt.failure.failure_class is FailureClass.NAME_RESOLUTION
        assert transports.session.preflight_log == ["srv01"]


# ── Primary ──────────────────────────────────────────────────────────


class TestPrimary:
    def test_single_round_trip(self, resolver, transports):
        transports.session.set_response("srv01", RemoteSnapshot(registry_value=[], marker_present=True))
        res = resolver.resolve("srv01")
        assert res.signals == {REG: TriState.FALSE, MARKER: TriState.TRUE}
        assert res.transport is TransportKind.PRIMARY
        assert transports.session.call_count == 1
        assert transports.fallback_store.call_count == 0
        assert res.path[-1] is ResolveState.DONE

    def test_partial_failure_keeps_the_good_half(self, resolver, transports):
        transports.session.set_response(
            "srv01", RemoteSnapshot(registry_error="Requested registry access is not allowed.", marker_present=False)
        )
        res = resolver.resolve("srv01", enable_fallback=True)
        assert res.signals == {REG: TriState.UNKNOWN, MARKER: TriState.FALSE}
        assert not res.connection_denied
        assert transports.fallback_store.call_count == 0

    def test_round_trip_with_nothing_resolved_counts_as_failure(self, resolver, transports):
        transports.session.set_response(
            "srv01", RemoteSnapshot(registry_error="Access is denied", marker_error="Access is denied")
        )
        res = resolver.resolve("srv01")
        assert res.connection_denied
        assert res.failure.failure_class is FailureClass.ACCESS_DENIED

    def test_collect_failure_goes_to_fallback(self, resolver, transports):
        transports.session.set_failure("srv01", TimeoutError("PowerShell call timed out after 30s"))
        transports.fallback_store.set_response("srv01", None)
        transports.fallback_files.set_response("srv01", False)
        res = resolver.resolve("srv01", enable_fallback=True)
        assert not res.connection_denied
        assert res.signals == {REG: TriState.FALSE, MARKER: TriState.FALSE}
        assert ResolveState.FALLBACK in res.path


# ── Fallback decision and fallback chain ─────────────────────────────


class TestFallback:
    def test_primary_fails_fallback_disabled(self, resolver, transports):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        res = resolver.resolve("srv01", enable_fallback=False)
        assert res.connection_denied
        assert res.failure.failure_class is FailureClass.CONNECTION_BLOCKED
        assert res.signals == {REG: TriState.UNKNOWN, MARKER: TriState.UNKNOWN}
        assert transports.fallback_store.call_count == 0
        assert transports.fallback_files.call_count == 0
        assert res.path[-2:] == [ResolveState.FALLBACK_DECISION, ResolveState.DENIED]

    def test_one_fallback_succeeds_is_not_denied(self, resolver, transports):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        transports.fallback_store.set_response("srv01", None)
        transports.fallback_files.set_failure("srv01", PermissionError("Access is denied"))
        res = resolver.resolve("srv01", enable_fallback=True)
        assert not res.connection_denied
        assert res.signals == {REG: TriState.FALSE, MARKER: TriState.UNKNOWN}
        assert res.transport is TransportKind.FALLBACK_REGISTRY
        share_attempt = res.attempts[-1]
        assert share_attempt.mechanism is TransportKind.FALLBACK_SHARE
        assert share_attempt.failure.failure_class is FailureClass.ACCESS_DENIED

    def test_share_succeeds_registry_fails(self, resolver, transports):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        transports.fallback_store.set_failure("srv01", TransportError("The network path was not found."))
        transports.fallback_files.set_response("srv01", True)
        res = resolver.resolve("srv01", enable_fallback=True)
        assert not res.connection_denied
        assert res.signals == {REG: TriState.UNKNOWN, MARKER: TriState.TRUE}
        assert res.transport is TransportKind.FALLBACK_SHARE

    def test_both_fallbacks_fail(self, resolver, transports):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        transports.fallback_store.set_failure("srv01", TransportError("The network path was not found."))
        transports.fallback_files.set_failure("srv01", PermissionError("Access is denied"))
        res = resolver.resolve("srv01", enable_fallback=True)
        assert res.connection_denied
        assert res.failure.failure_class is FailureClass.FALLBACK_FAILED
        assert "ConnectionBlocked" in res.failure.reason
        assert "network path was not found" in res.failure.reason
        assert "Access is denied" in res.failure.reason
        assert res.signals == {REG: TriState.UNKNOWN, MARKER: TriState.UNKNOWN}

    def test_each_fallback_tried_once(self, resolver, transports):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        transports.fallback_store.set_failure("srv01", TransportError("x"))
        transports.fallback_files.set_failure("srv01", TransportError("y"))
        resolver.resolve("srv01", enable_fallback=True)
        assert transports.fallback_store.call_count == 1
        assert transports.fallback_files.call_count == 1


class TestTermination:
    @pytest.mark.parametrize("fallback", [True, False])
    def test_every_state_visited_once(self, resolver, transports, fallback):
        transports.session.set_preflight_failure("srv01", WINRM_BLOCKED)
        res = resolver.resolve("srv01", enable_fallback=fallback)
        assert len(res.path) == len(set(res.path))
        assert res.path[-1] in (ResolveState.DONE, ResolveState.DENIED)

    def test_cancelled_before_start(self, resolver):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ResolveCancelled):
            resolver.resolve("srv01", cancel=cancel)
