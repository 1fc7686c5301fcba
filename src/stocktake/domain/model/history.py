"""Audit records for scan mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from stocktake.domain.model.enums import HistoryOperation


@dataclass(frozen=True, slots=True, kw_only=True)
class HistoryEntry:
    """Logical ``old_value -> new_value`` transition of one user's quantity for a code.

    ``sequence`` is assigned by the history store and breaks ties between entries
    recorded within the same clock tick.
    """

    operation: HistoryOperation
    actor: str
    count_id: str
    code: str
    old_value: int | None
    new_value: int | None
    description: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    sequence: int | None = None
