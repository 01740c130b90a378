"""
Audit ledger — one NDJSON line per check run.

Append-only: entries are never modified or deleted. The ledger
answers "when did we last look at these hosts, and what did we see"
without keeping every result record around.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from rebootwatch.core.models.result import CheckResult, RunSummary
from rebootwatch.core.models.signal import TriState

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


def generate_operation_id() -> str:
    """Generate a unique run identifier."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"chk-{now}-{uuid.uuid4().hex[:6]}"


class AuditEntry(BaseModel):
    """A single audit log entry, summarising one run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""

    targets: list[str] = Field(default_factory=list)
    reboot_required: list[str] = Field(default_factory=list)
    denied: list[str] = Field(default_factory=list)
    unknown: list[str] = Field(default_factory=list)

    any_reboot_required: bool = False
    any_connection_denied: bool = False
    restarts_issued: list[str] = Field(default_factory=list)
    restarts_failed: list[str] = Field(default_factory=list)
    duration_ms: int = 0

    @classmethod
    def from_run(
        cls,
        operation_id: str,
        results: list[CheckResult],
        summary: RunSummary,
        duration_ms: int = 0,
    ) -> AuditEntry:
        return cls(
            operation_id=operation_id,
            targets=[r.target for r in results],
            reboot_required=[r.target for r in results if r.reboot_required is TriState.TRUE],
            denied=[r.target for r in results if r.remote_connection_denied],
            unknown=[
                r.target
                for r in results
                if r.reboot_required is TriState.UNKNOWN and not r.remote_connection_denied
            ],
            any_reboot_required=summary.any_reboot_required,
            any_connection_denied=summary.any_connection_denied,
            restarts_issued=[r.target for r in summary.restart_receipts if r.ok],
            restarts_failed=[r.target for r in summary.restart_failures],
            duration_ms=duration_ms,
        )


class AuditWriter:
    """Append-only audit ledger writer."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an audit entry to the ledger."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s", entry.operation_id)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """Read all entries from the ledger, oldest first."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:]
