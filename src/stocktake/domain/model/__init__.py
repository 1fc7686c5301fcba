"""Public domain model surface."""

from __future__ import annotations

from stocktake.domain.model.count import Count, ExpectedItem
from stocktake.domain.model.discrepancy import Discrepancy, DiscrepancyResult, ItemTally
from stocktake.domain.model.enums import CountStatus, DiscrepancyKind, HistoryOperation, ScanKind
from stocktake.domain.model.history import HistoryEntry
from stocktake.domain.model.scan import ScanEvent, new_event_id

__all__ = [
    "Count",
    "CountStatus",
    "Discrepancy",
    "DiscrepancyKind",
    "DiscrepancyResult",
    "ExpectedItem",
    "HistoryEntry",
    "HistoryOperation",
    "ItemTally",
    "ScanEvent",
    "ScanKind",
    "new_event_id",
]
