"""Adapters — bindings to the stores, sessions and shares a check reads from.

Public re-exports for convenient access.
"""

from rebootwatch.adapters.base import (
    ConfigStoreAdapter,
    FileProbeAdapter,
    RemoteSessionAdapter,
    RemoteSnapshot,
    RestartAdapter,
    TransportError,
)
from rebootwatch.adapters.registry import TransportSet, build_transports

__all__ = [
    "ConfigStoreAdapter",
    "FileProbeAdapter",
    "RemoteSessionAdapter",
    "RemoteSnapshot",
    "RestartAdapter",
    "TransportError",
    "TransportSet",
    "build_transports",
]
