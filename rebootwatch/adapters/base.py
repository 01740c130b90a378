"""
Adapter base — the contract between the engine and the outside world.

The engine only reaches a host through these interfaces, never
directly through winreg, PowerShell or a UNC path. Read adapters
raise on failure (``TransportError`` or the underlying OS error);
the engine classifies whatever they raise. The restart adapter is
the exception: it has side effects and returns a Receipt instead.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from rebootwatch.core.models.action import Receipt

T = TypeVar("T")


class TransportError(Exception):
    """A transport-level failure reaching or reading from a target.

    Attributes:
        detail: Raw text from the underlying tool (stderr, error record).
    """

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.detail = detail or message


def call_with_deadline(fn: Callable[[], T], timeout: float, what: str) -> T:
    """Run a blocking call that takes no timeout of its own.

    The call runs on a daemon thread that is abandoned once ``timeout``
    seconds pass; the OS call may keep running but can no longer hold
    up the caller. Whatever ``fn`` raises is re-raised here.

    Raises:
        TimeoutError: when the deadline passes first.
    """
    outcome: dict[str, Any] = {}

    def worker() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as e:
            outcome["error"] = e

    thread = threading.Thread(target=worker, name=f"deadline-{what}", daemon=True)
    thread.start()
    thread.join(timeout)
    if thread.is_alive():
        raise TimeoutError(f"{what} timed out after {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


class Adapter(ABC):
    """Common base: every adapter has a name and an availability check."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'winreg', 'powershell')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying mechanism exists on this machine.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class ConfigStoreAdapter(Adapter):
    """Reads one named value from the configuration store (registry)."""

    @abstractmethod
    def read_value(self, target: str, key_path: str, value_name: str) -> Any:
        """Read a value under HKLM.

        Returns:
            The value's data, or None when the value does not exist.

        Raises:
            TransportError or OSError when the read itself fails.
        """


class FileProbeAdapter(Adapter):
    """Tests whether a file exists under the target's system root."""

    @abstractmethod
    def path_exists(self, target: str, relative_path: str) -> bool:
        """Return True if ``<SystemRoot>/<relative_path>`` exists.

        Raises:
            TransportError or OSError when the existence test fails.
        """


class RemoteSnapshot(BaseModel):
    """Both signal reads, taken in a single remote round trip.

    Each half carries either a value or the error that replaced it.
    """

    registry_value: Any = None
    registry_error: str | None = None
    marker_present: bool | None = None
    marker_error: str | None = None


class RemoteSessionAdapter(Adapter):
    """Primary remote management protocol (WS-Management)."""

    @abstractmethod
    def preflight(self, target: str) -> None:
        """Check the management endpoint answers. Raises on failure."""

    @abstractmethod
    def collect(
        self,
        target: str,
        key_path: str,
        value_name: str,
        marker_path: str,
    ) -> RemoteSnapshot:
        """Read both signals on the target in one round trip.

        Raises when the round trip as a whole fails. A failure of
        one half is reported inside the snapshot.
        """


class RestartAdapter(Adapter):
    """Issues a restart against a target. Never raises."""

    @abstractmethod
    def restart(self, target: str, local: bool = False) -> Receipt:
        """Restart the target and return a receipt."""
