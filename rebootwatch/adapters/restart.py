"""
Restart adapter — the one action with real-world side effects.

Runs ``shutdown.exe /r`` against a target. Like every side-effecting
adapter it never raises: success or failure comes back as a Receipt.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from rebootwatch.adapters.base import RestartAdapter
from rebootwatch.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShutdownRestartAdapter(RestartAdapter):
    """Restart through ``shutdown /r``.

    Args:
        delay_seconds: Grace period passed as ``/t``.
        timeout: Seconds allowed for shutdown.exe to return.
    """

    def __init__(self, delay_seconds: int = 0, timeout: float = 30.0):
        self._delay = delay_seconds
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "shutdown"

    def is_available(self) -> bool:
        return shutil.which("shutdown") is not None

    def restart(self, target: str, local: bool = False) -> Receipt:
        executable = shutil.which("shutdown")
        if executable is None:
            return Receipt.failure(
                adapter=self.name,
                target=target,
                error="shutdown.exe not found",
            )

        command = [executable, "/r", "/t", str(self._delay)]
        if not local:
            command += ["/m", f"\\\\{target}"]

        logger.warning("Restarting %s", target)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                target=target,
                error=f"shutdown timed out after {self._timeout}s",
                metadata={"command": command},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                target=target,
                error=f"shutdown execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                target=target,
                output=result.stdout.strip(),
                duration_ms=elapsed_ms,
                metadata={"command": command},
            )
        return Receipt.failure(
            adapter=self.name,
            target=target,
            error=result.stderr.strip() or f"shutdown exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={"command": command, "return_code": result.returncode},
        )
