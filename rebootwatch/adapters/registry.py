"""
Transport registry — the set of adapters one run talks through.

The engine never builds adapters itself. It receives a TransportSet,
so tests (and the CLI's callers) can swap any transport for a mock.
Name resolution and local-host detection live here too: they are the
only other places the engine touches the network stack.
"""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from rebootwatch.adapters.base import (
    ConfigStoreAdapter,
    FileProbeAdapter,
    RemoteSessionAdapter,
    RestartAdapter,
    call_with_deadline,
)

logger = logging.getLogger(__name__)

_LOOPBACK_NAMES = frozenset({".", "localhost", "127.0.0.1", "::1"})


def resolve_name(target: str, timeout: float | None = None) -> None:
    """Resolve ``target`` through the system resolver. Raises on failure.

    ``getaddrinfo`` has no timeout of its own; with ``timeout`` set the
    lookup is abandoned after that many seconds (TimeoutError).
    """
    if timeout is None:
        socket.getaddrinfo(target, None)
        return
    call_with_deadline(lambda: socket.getaddrinfo(target, None), timeout, f"Name lookup for {target}")


def local_names(extra: Iterable[str] = ()) -> frozenset[str]:
    """Every name (lower-cased) that means "this machine"."""
    names = set(_LOOPBACK_NAMES)
    for candidate in (socket.gethostname(), socket.getfqdn(), os.environ.get("COMPUTERNAME", "")):
        if candidate:
            names.add(candidate.lower())
            names.add(candidate.split(".", 1)[0].lower())
    names.update(alias.strip().lower() for alias in extra if alias.strip())
    return frozenset(names)


@dataclass
class TransportSet:
    """All adapters a check run may use, grouped by role."""

    local_store: ConfigStoreAdapter
    local_files: FileProbeAdapter
    session: RemoteSessionAdapter
    fallback_store: ConfigStoreAdapter
    fallback_files: FileProbeAdapter
    restarter: RestartAdapter
    name_resolver: Callable[[str], Any] = resolve_name
    local_aliases: frozenset[str] = field(default_factory=local_names)

    def is_local(self, target: str) -> bool:
        return target.strip().lower() in self.local_aliases

    def status(self) -> dict[str, dict[str, Any]]:
        """Availability of every adapter, keyed by role."""
        status = {}
        for role in ("local_store", "local_files", "session", "fallback_store", "fallback_files", "restarter"):
            adapter = getattr(self, role)
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[role] = {
                "name": adapter.name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def build_transports(settings: Any) -> TransportSet:
    """Build the production TransportSet from Settings."""
    from rebootwatch.adapters.fallback import AdminShareAdapter, RemoteRegistryAdapter
    from rebootwatch.adapters.local import LocalFileAdapter, LocalRegistryAdapter
    from rebootwatch.adapters.powershell import PowerShellRemotingAdapter
    from rebootwatch.adapters.restart import ShutdownRestartAdapter

    timeout = settings.timeout_seconds
    transports = TransportSet(
        local_store=LocalRegistryAdapter(),
        local_files=LocalFileAdapter(),
        session=PowerShellRemotingAdapter(executable=settings.powershell, timeout=timeout),
        fallback_store=RemoteRegistryAdapter(timeout=timeout),
        fallback_files=AdminShareAdapter(timeout=timeout),
        restarter=ShutdownRestartAdapter(timeout=timeout),
        name_resolver=partial(resolve_name, timeout=timeout),
        local_aliases=local_names(settings.local_aliases),
    )
    logger.debug("Transports: %s", transports.status())
    return transports
