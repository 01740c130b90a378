"""
Shared test fixtures and configuration.
"""

import socket
from pathlib import Path

import pytest

from rebootwatch.adapters.base import RemoteSnapshot
from rebootwatch.adapters.mock import MockFiles, MockRestarter, MockSession, MockStore
from rebootwatch.adapters.registry import TransportSet
from rebootwatch.core.config.loader import Settings
from rebootwatch.core.engine.executor import RebootEngine
from rebootwatch.core.engine.probe import SignalLocations

LOCAL_NAMES = frozenset({".", "localhost", "127.0.0.1", "this-pc"})


class NameResolver:
    """Scriptable stand-in for DNS: listed names fail to resolve."""

    def __init__(self):
        self.unresolvable: set[str] = set()
        self.calls: list[str] = []

    def __call__(self, target: str) -> None:
        self.calls.append(target)
        if target.lower() in self.unresolvable:
            raise socket.gaierror(11001, "No such host is known")


@pytest.fixture
def locations() -> SignalLocations:
    return SignalLocations.from_settings(Settings())


@pytest.fixture
def name_resolver() -> NameResolver:
    return NameResolver()


@pytest.fixture
def transports(name_resolver: NameResolver) -> TransportSet:
    """Mocks for every transport. Defaults: nothing pending anywhere."""
    return TransportSet(
        local_store=MockStore("local-store"),
        local_files=MockFiles("local-files"),
        session=MockSession(RemoteSnapshot(registry_value=[], marker_present=False)),
        fallback_store=MockStore("fallback-store"),
        fallback_files=MockFiles("fallback-files"),
        restarter=MockRestarter(),
        name_resolver=name_resolver,
        local_aliases=LOCAL_NAMES,
    )


@pytest.fixture
def engine(transports: TransportSet, locations: SignalLocations) -> RebootEngine:
    return RebootEngine(transports, locations)


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir
