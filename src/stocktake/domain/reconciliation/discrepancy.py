"""Diff an expectation set against scanned totals.

Expected codes are always classified through their expected quantity (missing
or over) and never repeated as extras. Exact matches are not discrepancies.
The canonical order is expected items in expectation-set order, followed by
unexpected codes in the order they were first scanned.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stocktake.domain.model import (
    Discrepancy,
    DiscrepancyKind,
    DiscrepancyResult,
    ItemTally,
)
from stocktake.domain.reconciliation.aggregate import codes_in_first_seen_order, totals_by_code

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stocktake.domain.model import Count, ScanEvent


def classify(expected: int, scanned: int) -> DiscrepancyKind | None:
    diff = scanned - expected
    if diff < 0:
        return DiscrepancyKind.MISSING
    if diff > 0:
        return DiscrepancyKind.OVER
    return None


def resolve_discrepancies(
    count: Count,
    events: Sequence[ScanEvent],
    *,
    computed_at: datetime | None = None,
) -> DiscrepancyResult:
    """Compute the discrepancy result for ``count`` from its full event sequence.

    A count without any scans still resolves: every expected item is reported
    fully missing.
    """

    totals = totals_by_code(events)

    lines: list[ItemTally] = []
    records: list[Discrepancy] = []
    expected_codes: set[str] = set()
    for item in count.expected_items:
        expected_codes.add(item.code)
        scanned = totals.get(item.code, 0)
        lines.append(ItemTally(code=item.code, expected=item.expected, scanned=scanned))
        kind = classify(item.expected, scanned)
        if kind is None:
            continue
        records.append(
            Discrepancy(
                kind=kind,
                code=item.code,
                expected=item.expected,
                scanned=scanned,
                description=item.description,
            )
        )

    for code in codes_in_first_seen_order(events):
        if code in expected_codes:
            continue
        scanned = totals[code]
        if scanned <= 0:
            continue
        records.append(Discrepancy(kind=DiscrepancyKind.EXTRA, code=code, scanned=scanned))

    return DiscrepancyResult(
        count_id=count.id,
        lines=tuple(lines),
        discrepancies=tuple(records),
        computed_at=computed_at or datetime.now(tz=UTC),
    )
