"""
Receipt model — the outcome of a side-effecting action.

The restart adapter is the only component with real-world side
effects. It never raises; it returns a Receipt instead.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of an adapter action against one target."""

    adapter: str
    target: str
    action: str = "restart"
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, adapter: str, target: str, output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(adapter=adapter, target=target, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, target: str, error: str, **kwargs: Any) -> Receipt:
        """Create a failure receipt."""
        return cls(adapter=adapter, target=target, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, target: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Create a skip receipt."""
        return cls(adapter=adapter, target=target, status="skipped", output=reason, **kwargs)
