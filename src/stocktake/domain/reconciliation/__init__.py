"""Count reconciliation core.

Flow for one count:
1) scans are appended to the event store (history is recorded on the side)
2) events are folded into per-user and per-code totals
3) totals are compared against the expectation set for progress
4) at finalization the expectation set is diffed against the totals once
5) the report assembler shapes all of the above for collaborators
"""

from __future__ import annotations

from .aggregate import UserAggregate, aggregate_by_user, totals_by_code
from .brands import OTHER_BRANDS, resolve_brand
from .discrepancy import resolve_discrepancies
from .engine import CountReconciliationEngine
from .history import HistoryRecorder
from .progress import BrandProgress, ItemProgress, ProgressSummary, calculate_progress
from .report import CountReport, CountSummary, ReportHeader, ReportLine, UserBreakdown

__all__ = [
    "OTHER_BRANDS",
    "BrandProgress",
    "CountReconciliationEngine",
    "CountReport",
    "CountSummary",
    "HistoryRecorder",
    "ItemProgress",
    "ProgressSummary",
    "ReportHeader",
    "ReportLine",
    "UserAggregate",
    "UserBreakdown",
    "aggregate_by_user",
    "calculate_progress",
    "resolve_brand",
    "resolve_discrepancies",
    "totals_by_code",
]
