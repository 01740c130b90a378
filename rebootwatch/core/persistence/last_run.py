"""
Last-run mirror — the results of the most recent run, as JSON.

Written atomically (temp file in the same directory, then replace)
so a reader never sees half a document. Each run overwrites the
previous one; nothing accumulates here.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from rebootwatch.core.models.result import CheckResult, RunSummary

logger = logging.getLogger(__name__)

DEFAULT_LAST_RUN_FILE = "last_run.json"


class LastRun(BaseModel):
    """Snapshot of one completed run."""

    schema_version: int = 1
    operation_id: str = ""
    finished_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    summary: dict[str, bool] = Field(default_factory=dict)
    results: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_run(cls, operation_id: str, results: list[CheckResult], summary: RunSummary) -> LastRun:
        return cls(
            operation_id=operation_id,
            summary=summary.to_record(),
            results=[r.to_record() for r in results],
        )


def load_last_run(path: Path) -> LastRun | None:
    """Load the last-run mirror; None when missing or unreadable."""
    if not path.is_file():
        logger.info("No last-run file at %s", path)
        return None

    try:
        return LastRun.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Cannot load last run from %s: %s", path, e)
        return None


def save_last_run(last_run: LastRun, path: Path) -> None:
    """Replace the last-run mirror atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(last_run.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".last_run_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
        logger.debug("Last run saved to %s", path)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise
