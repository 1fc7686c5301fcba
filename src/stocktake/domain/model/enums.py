"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ScanKind(StrEnum):
    SCAN = "scan"
    ADJUSTMENT = "adjustment"


class HistoryOperation(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class DiscrepancyKind(StrEnum):
    """Tag for a discrepancy record.

    ``MISSING`` and ``OVER`` come from the expectation set, ``EXTRA`` from
    codes that were scanned without being expected at all.
    """

    MISSING = "missing"
    OVER = "over"
    EXTRA = "extra"


class CountStatus(StrEnum):
    OPEN = "open"
    FINALIZED = "finalized"
