"""
PowerShell remoting adapter — the primary remote transport.

Shells out to ``pwsh``/``powershell`` and talks WS-Management through
``Test-WSMan`` (preflight) and ``Invoke-Command`` (collection). Both
signals are read inside one script block so a target costs a single
remote round trip. The script block traps each read separately and
returns a JSON object; a failed half comes back as an error string.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess

from rebootwatch.adapters.base import RemoteSessionAdapter, RemoteSnapshot, TransportError

logger = logging.getLogger(__name__)

_SHELL_CANDIDATES = ("pwsh", "powershell")

_COLLECT_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$out = Invoke-Command -ComputerName '{target}' -ErrorAction Stop -ScriptBlock {{
    param($KeyPath, $ValueName, $MarkerPath)
    $r = [ordered]@{{
        registry_value = $null; registry_error = $null
        marker_present = $null; marker_error = $null
    }}
    try {{
        $item = Get-ItemProperty -LiteralPath ('HKLM:\' + $KeyPath) -ErrorAction Stop
        $r.registry_value = @($item.$ValueName | Where-Object {{ $_ }})
    }} catch {{
        $r.registry_error = $_.Exception.Message
    }}
    try {{
        $r.marker_present = [bool](Test-Path -LiteralPath (Join-Path $env:SystemRoot $MarkerPath) -ErrorAction Stop)
    }} catch {{
        $r.marker_error = $_.Exception.Message
    }}
    [pscustomobject]$r
}} -ArgumentList '{key_path}', '{value_name}', '{marker_path}'
$out | Select-Object registry_value, registry_error, marker_present, marker_error |
    ConvertTo-Json -Compress -Depth 3
"""

_PREFLIGHT_SCRIPT = "$ErrorActionPreference = 'Stop'; Test-WSMan -ComputerName '{target}' | Out-Null"


def _quote(value: str) -> str:
    """Escape a value for a single-quoted PowerShell string."""
    return value.replace("'", "''")


class PowerShellRemotingAdapter(RemoteSessionAdapter):
    """Primary transport over WinRM via a PowerShell subprocess.

    Args:
        executable: Explicit PowerShell path. Auto-detected when None.
        timeout: Seconds allowed for each subprocess call.
    """

    def __init__(self, executable: str | None = None, timeout: float = 30.0):
        self._executable = executable
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "powershell"

    def _resolve_executable(self) -> str | None:
        if self._executable:
            return self._executable
        for candidate in _SHELL_CANDIDATES:
            found = shutil.which(candidate)
            if found:
                return found
        return None

    def is_available(self) -> bool:
        return self._resolve_executable() is not None

    def _run(self, script: str) -> str:
        executable = self._resolve_executable()
        if executable is None:
            raise TransportError("PowerShell executable not found (pwsh/powershell)")

        try:
            result = subprocess.run(
                [executable, "-NoProfile", "-NonInteractive", "-Command", script],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TimeoutError(f"PowerShell call timed out after {self._timeout}s") from e

        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise TransportError(
                stderr.splitlines()[0] if stderr else f"PowerShell exited with code {result.returncode}",
                detail=stderr,
            )
        return result.stdout.strip()

    def preflight(self, target: str) -> None:
        logger.debug("Test-WSMan %s", target)
        self._run(_PREFLIGHT_SCRIPT.format(target=_quote(target)))

    def collect(
        self,
        target: str,
        key_path: str,
        value_name: str,
        marker_path: str,
    ) -> RemoteSnapshot:
        script = _COLLECT_SCRIPT.format(
            target=_quote(target),
            key_path=_quote(key_path),
            value_name=_quote(value_name),
            marker_path=_quote(marker_path),
        )
        logger.debug("Invoke-Command %s", target)
        output = self._run(script)
        return parse_snapshot(output)


def parse_snapshot(output: str) -> RemoteSnapshot:
    """Turn the collection script's JSON into a RemoteSnapshot."""
    if not output:
        raise TransportError("Remote check returned no output")
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise TransportError(f"Remote check returned invalid JSON: {e}", detail=output) from e
    if isinstance(data, list):
        # ConvertTo-Json emits an array when the pipeline yields several objects
        data = data[0] if data else {}
    if not isinstance(data, dict):
        raise TransportError("Remote check returned an unexpected payload", detail=output)
    return RemoteSnapshot.model_validate(data)
