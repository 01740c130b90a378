"""
Tri-state resolver — combine signal outcomes into one verdict.

Any True wins. Otherwise False needs every signal resolved to False.
Anything else is Unknown: partial information never yields False.
"""

from __future__ import annotations

from collections.abc import Iterable

from rebootwatch.core.models.signal import TriState


def resolve(*signals: TriState) -> TriState:
    """Aggregate signal outcomes. ``resolve()`` with no signals is Unknown."""
    return resolve_all(signals)


def resolve_all(signals: Iterable[TriState]) -> TriState:
    values = list(signals)
    if TriState.TRUE in values:
        return TriState.TRUE
    if values and all(v is TriState.FALSE for v in values):
        return TriState.FALSE
    return TriState.UNKNOWN
