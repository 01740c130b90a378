"""
Fallback adapters — degraded transports used when WinRM is blocked.

Some networks firewall WS-Management but still allow the remote
registry service and the administrative file share. These adapters
reach the same two signals through those paths:

    RemoteRegistryAdapter  →  reg.exe query \\\\host\\HKLM\\...
    AdminShareAdapter      →  \\\\host\\ADMIN$\\<marker path>

Each is independent; the resolver tries both even if one fails.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys

from rebootwatch.adapters.base import ConfigStoreAdapter, FileProbeAdapter, TransportError, call_with_deadline

logger = logging.getLogger(__name__)

# reg.exe prints this for a missing key *or* a missing value. It exits 1
# for that and for access errors alike, so only the English text tells
# them apart; on a localized host a missing value comes back as a
# TransportError (Unknown), never as a false "nothing pending".
_NOT_FOUND_MARKERS = (
    "unable to find the specified registry key or value",
)

# Win32 codes that mean the file itself is missing, not the share
_FILE_MISSING_WINERRORS = frozenset({2, 3})


def parse_reg_query(output: str, value_name: str) -> list[str] | str | None:
    """Extract a value's data from ``reg query /v`` output.

    REG_MULTI_SZ data is printed joined by a literal ``\\0``; it comes
    back as a list. Other types come back as the raw data string.
    Returns None when the value line is absent.

    The line is matched on the known value name rather than split on
    whitespace, since value names may contain spaces.
    """
    wanted = value_name.lower()
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped.lower().startswith(wanted):
            continue
        rest = stripped[len(value_name):]
        if rest and not rest[0].isspace():
            continue  # a longer name sharing the prefix
        parts = rest.split(None, 1)
        if not parts or not parts[0].startswith("REG_"):
            continue
        kind = parts[0]
        data = parts[1] if len(parts) == 2 else ""
        if kind == "REG_MULTI_SZ":
            return [item for item in data.split("\\0") if item]
        return data
    return None


class RemoteRegistryAdapter(ConfigStoreAdapter):
    """Read a remote HKLM value through the Remote Registry service."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "remote-registry"

    def is_available(self) -> bool:
        return shutil.which("reg") is not None

    def read_value(self, target: str, key_path: str, value_name: str) -> list[str] | str | None:
        executable = shutil.which("reg")
        if executable is None:
            raise TransportError("reg.exe not found; remote registry fallback needs Windows")

        key = f"\\\\{target}\\HKLM\\{key_path}"
        logger.debug("reg query %s /v %s", key, value_name)
        try:
            result = subprocess.run(
                [executable, "query", key, "/v", value_name],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(f"Remote registry query timed out after {self._timeout}s") from e

        if result.returncode != 0:
            message = (result.stderr.strip() or result.stdout.strip()
                       or f"reg.exe exited with code {result.returncode}")
            if any(marker in message.lower() for marker in _NOT_FOUND_MARKERS):
                return None
            raise TransportError(message.removeprefix("ERROR: "), detail=message)

        value = parse_reg_query(result.stdout, value_name)
        if value is None:
            # reg.exe succeeded, so the value exists; its line did not parse
            raise TransportError(
                f"Cannot find {value_name} in reg.exe output", detail=result.stdout
            )
        return value


class AdminShareAdapter(FileProbeAdapter):
    """Test file existence through the target's ADMIN$ share."""

    def __init__(self, share: str = "ADMIN$", timeout: float = 30.0):
        self._share = share
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "admin-share"

    def is_available(self) -> bool:
        return sys.platform == "win32"

    def unc_path(self, target: str, relative_path: str) -> str:
        relative = relative_path.replace("/", "\\").lstrip("\\")
        return f"\\\\{target}\\{self._share}\\{relative}"

    def path_exists(self, target: str, relative_path: str) -> bool:
        if not self.is_available():
            raise TransportError("UNC share access is only available on Windows")

        path = self.unc_path(target, relative_path)
        logger.debug("Testing %s", path)
        try:
            # The SMB redirector can block far past any sane deadline on a
            # blackholed host
            call_with_deadline(lambda: os.stat(path), self._timeout, "Admin share access")
        except FileNotFoundError as e:
            if getattr(e, "winerror", None) in _FILE_MISSING_WINERRORS:
                return False
            raise TransportError(str(e)) from e
        return True
