"""
Local adapters — in-process registry and filesystem access.

Used only when the target is this machine. No network, no sessions:
the registry is read through ``winreg`` and the marker file is tested
with ``pathlib`` under ``%SystemRoot%``.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import PureWindowsPath, Path
from typing import Any

from rebootwatch.adapters.base import ConfigStoreAdapter, FileProbeAdapter, TransportError

logger = logging.getLogger(__name__)

_DEFAULT_SYSTEM_ROOT = r"C:\Windows"


def system_root() -> str:
    """The local Windows installation directory."""
    return os.environ.get("SystemRoot") or os.environ.get("SYSTEMROOT") or _DEFAULT_SYSTEM_ROOT


class LocalRegistryAdapter(ConfigStoreAdapter):
    """Read HKLM values in-process."""

    @property
    def name(self) -> str:
        return "winreg"

    def is_available(self) -> bool:
        return sys.platform == "win32"

    def read_value(self, target: str, key_path: str, value_name: str) -> Any:
        if not self.is_available():
            raise TransportError("Local registry is only available on Windows")

        import winreg

        logger.debug("Reading HKLM\\%s\\%s", key_path, value_name)
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path) as key:
                data, _kind = winreg.QueryValueEx(key, value_name)
        except FileNotFoundError:
            # Missing value is the normal "nothing pending" case
            return None
        return data


class LocalFileAdapter(FileProbeAdapter):
    """Test file existence under the local system root."""

    def __init__(self, root: str | None = None):
        self._root = root

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def path_exists(self, target: str, relative_path: str) -> bool:
        root = self._root or system_root()
        parts = PureWindowsPath(relative_path).parts
        path = Path(root).joinpath(*parts)
        logger.debug("Testing %s", path)
        try:
            path.stat()
        except FileNotFoundError:
            return False
        return True
