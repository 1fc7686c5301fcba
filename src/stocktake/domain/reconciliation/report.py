"""Shape aggregator, progress, discrepancy and history outputs into one read model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stocktake.domain.reconciliation.brands import group_by_brand, resolve_brand

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from stocktake.domain.model import Count, CountStatus, DiscrepancyResult, HistoryEntry
    from stocktake.domain.reconciliation.aggregate import UserAggregate
    from stocktake.domain.reconciliation.progress import ProgressSummary


@dataclass(frozen=True, slots=True, kw_only=True)
class ReportHeader:
    count_id: str
    status: CountStatus
    created_at: datetime
    name: str | None = None
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    clarification: str | None = None
    expected_codes: int = 0
    expected_units: int = 0
    scanned_units: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class ReportLine:
    code: str
    brand: str
    quantity: int
    description: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class UserBreakdown:
    user_id: str
    total_items: int
    total_units: int
    lines_by_brand: dict[str, tuple[ReportLine, ...]] = field(
        default_factory=dict[str, tuple[ReportLine, ...]]
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class CountReport:
    header: ReportHeader
    users: tuple[UserBreakdown, ...]
    progress: ProgressSummary
    discrepancies: DiscrepancyResult | None = None
    history: tuple[HistoryEntry, ...] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class CountSummary:
    """One row of the count listing."""

    count_id: str
    status: CountStatus
    created_at: datetime
    progress: int
    scanned_units: int
    name: str | None = None
    discrepancy_count: int | None = None


def user_lines(count: Count, aggregate: UserAggregate) -> tuple[ReportLine, ...]:
    """Return one line per code the user currently holds, sorted by code."""

    lines: list[ReportLine] = []
    for code, quantity in sorted(aggregate.quantities.items()):
        item = count.expected_item(code)
        description = item.description if item is not None else None
        brand = item.brand if item is not None else None
        lines.append(
            ReportLine(
                code=code,
                brand=resolve_brand(brand, description),
                quantity=quantity,
                description=description,
            )
        )
    return tuple(lines)


def user_breakdown(count: Count, aggregate: UserAggregate) -> UserBreakdown:
    grouped = group_by_brand(user_lines(count, aggregate), brand_of=lambda line: line.brand)
    return UserBreakdown(
        user_id=aggregate.user_id,
        total_items=aggregate.total_items,
        total_units=aggregate.total_units,
        lines_by_brand={brand: tuple(lines) for brand, lines in grouped.items()},
    )


def build_header(count: Count, progress: ProgressSummary, *, scanned_units: int) -> ReportHeader:
    return ReportHeader(
        count_id=count.id,
        status=count.status,
        created_at=count.created_at,
        name=count.name,
        finalized_at=count.finalized_at,
        finalized_by=count.finalized_by,
        clarification=count.clarification,
        expected_codes=len(count.expected_items),
        expected_units=progress.expected_units,
        scanned_units=scanned_units,
    )


def assemble_report(
    count: Count,
    aggregates: Mapping[str, UserAggregate],
    progress: ProgressSummary,
    *,
    history: Iterable[HistoryEntry] | None = None,
) -> CountReport:
    """Compose the report for ``count``.

    Discrepancies are only present once the count is finalized; history only
    when the caller asked for it.
    """

    users = tuple(user_breakdown(count, aggregates[user_id]) for user_id in sorted(aggregates))
    scanned_units = sum(user.total_units for user in users)
    return CountReport(
        header=build_header(count, progress, scanned_units=scanned_units),
        users=users,
        progress=progress,
        discrepancies=count.result if count.is_finalized else None,
        history=tuple(history) if history is not None else None,
    )


def summarize_count(count: Count, progress: ProgressSummary, *, scanned_units: int) -> CountSummary:
    return CountSummary(
        count_id=count.id,
        status=count.status,
        created_at=count.created_at,
        progress=progress.overall,
        scanned_units=scanned_units,
        name=count.name,
        discrepancy_count=len(count.result.discrepancies) if count.result is not None else None,
    )
