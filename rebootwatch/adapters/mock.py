"""
Mock adapters — scriptable test doubles for every transport.

Each mock answers per target: a configured value, or a configured
exception to raise. Unconfigured targets get the default. Every call
is logged so tests can assert which transports were touched.
"""

from __future__ import annotations

import threading
from typing import Any

from rebootwatch.adapters.base import (
    ConfigStoreAdapter,
    FileProbeAdapter,
    RemoteSessionAdapter,
    RemoteSnapshot,
    RestartAdapter,
)
from rebootwatch.core.models.action import Receipt


class _Scripted:
    """Per-target responses plus a thread-safe call log."""

    def __init__(self, default: Any = None, available: bool = True):
        self._default = default
        self._available = available
        self._responses: dict[str, Any] = {}
        self._call_log: list[str] = []
        self._lock = threading.Lock()

    @property
    def call_log(self) -> list[str]:
        """Targets this mock has been called with, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(self, target: str, value: Any) -> None:
        """Answer ``value`` for ``target``."""
        self._responses[target.lower()] = value

    def set_failure(self, target: str, error: BaseException) -> None:
        """Raise ``error`` when ``target`` is queried."""
        self._responses[target.lower()] = error

    def _answer(self, target: str) -> Any:
        with self._lock:
            self._call_log.append(target)
        value = self._responses.get(target.lower(), self._default)
        if isinstance(value, BaseException):
            raise value
        return value

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()


class MockStore(_Scripted, ConfigStoreAdapter):
    """Config store returning scripted values (None = value absent)."""

    def __init__(self, adapter_name: str = "mock-store", default: Any = None, available: bool = True):
        super().__init__(default=default, available=available)
        self._name = adapter_name

    @property
    def name(self) -> str:
        return self._name

    def read_value(self, target: str, key_path: str, value_name: str) -> Any:
        return self._answer(target)


class MockFiles(_Scripted, FileProbeAdapter):
    """File probe returning scripted existence answers."""

    def __init__(self, adapter_name: str = "mock-files", default: bool = False, available: bool = True):
        super().__init__(default=default, available=available)
        self._name = adapter_name

    @property
    def name(self) -> str:
        return self._name

    def path_exists(self, target: str, relative_path: str) -> bool:
        return bool(self._answer(target))


class MockSession(_Scripted, RemoteSessionAdapter):
    """Remote session with scripted preflight and collection outcomes.

    ``set_preflight_failure`` makes the preflight raise; ``set_response``
    scripts the snapshot (or an exception) returned by ``collect``.
    """

    def __init__(self, default: RemoteSnapshot | None = None, available: bool = True):
        super().__init__(
            default=default or RemoteSnapshot(registry_value=None, marker_present=False),
            available=available,
        )
        self._preflight_failures: dict[str, BaseException] = {}
        self.preflight_log: list[str] = []

    @property
    def name(self) -> str:
        return "mock-session"

    def set_preflight_failure(self, target: str, error: BaseException) -> None:
        self._preflight_failures[target.lower()] = error

    def preflight(self, target: str) -> None:
        with self._lock:
            self.preflight_log.append(target)
        error = self._preflight_failures.get(target.lower())
        if error is not None:
            raise error

    def collect(self, target: str, key_path: str, value_name: str, marker_path: str) -> RemoteSnapshot:
        return self._answer(target)

    def reset(self) -> None:
        super().reset()
        self._preflight_failures.clear()
        self.preflight_log.clear()


class MockRestarter(RestartAdapter):
    """Records restart requests; optionally fails for chosen targets."""

    def __init__(self, available: bool = True):
        self._available = available
        self._failures: dict[str, str] = {}
        self.restarted: list[str] = []

    @property
    def name(self) -> str:
        return "mock-restart"

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, target: str, error: str = "Mock restart failure") -> None:
        self._failures[target.lower()] = error

    def restart(self, target: str, local: bool = False) -> Receipt:
        if target.lower() in self._failures:
            return Receipt.failure(adapter=self.name, target=target, error=self._failures[target.lower()])
        self.restarted.append(target)
        return Receipt.success(adapter=self.name, target=target, output="[mock] restarted")
