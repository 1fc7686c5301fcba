"""Completion percentages per item, per brand and overall.

An item contributes at most its expected quantity to any numerator, so one
over-counted item cannot hide under-counted ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stocktake.domain.reconciliation.brands import group_by_brand, resolve_brand

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from stocktake.domain.model import ExpectedItem


def capped_percent(credited: int, expected: int) -> int:
    """Floor of ``100 * credited / expected``, bounded to ``[0, 100]``.

    Nothing expected counts as complete.
    """

    if expected <= 0:
        return 100
    credited = max(0, min(credited, expected))
    return (100 * credited) // expected


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemProgress:
    code: str
    brand: str
    expected: int
    scanned: int
    description: str | None = None

    @property
    def credited(self) -> int:
        return max(0, min(self.scanned, self.expected))

    @property
    def percent(self) -> int:
        return capped_percent(self.credited, self.expected)

    @property
    def is_pending(self) -> bool:
        return self.scanned <= 0


@dataclass(frozen=True, slots=True, kw_only=True)
class BrandProgress:
    brand: str
    items: tuple[ItemProgress, ...] = ()

    @property
    def expected(self) -> int:
        return sum(item.expected for item in self.items)

    @property
    def scanned(self) -> int:
        return sum(item.scanned for item in self.items)

    @property
    def credited(self) -> int:
        return sum(item.credited for item in self.items)

    @property
    def percent(self) -> int:
        return capped_percent(self.credited, self.expected)

    @property
    def pending(self) -> tuple[ItemProgress, ...]:
        return tuple(item for item in self.items if item.is_pending)


@dataclass(frozen=True, slots=True, kw_only=True)
class ProgressSummary:
    per_item: dict[str, ItemProgress] = field(default_factory=dict[str, ItemProgress])
    per_brand: dict[str, BrandProgress] = field(default_factory=dict[str, BrandProgress])

    @property
    def expected_units(self) -> int:
        return sum(item.expected for item in self.per_item.values())

    @property
    def credited_units(self) -> int:
        return sum(item.credited for item in self.per_item.values())

    @property
    def overall(self) -> int:
        return capped_percent(self.credited_units, self.expected_units)

    @property
    def pending_by_brand(self) -> dict[str, tuple[ItemProgress, ...]]:
        """Unscanned expected items per brand; brands with none are left out."""

        return {
            name: brand.pending for name, brand in self.per_brand.items() if brand.pending
        }


def calculate_progress(
    expected_items: Iterable[ExpectedItem],
    scanned_by_code: Mapping[str, int],
) -> ProgressSummary:
    """Derive progress for an expectation set from per-code scanned totals.

    Codes scanned without being expected do not affect progress; they surface
    as discrepancies instead.
    """

    per_item: dict[str, ItemProgress] = {}
    for item in expected_items:
        per_item[item.code] = ItemProgress(
            code=item.code,
            brand=resolve_brand(item.brand, item.description),
            expected=item.expected,
            scanned=scanned_by_code.get(item.code, 0),
            description=item.description,
        )

    grouped = group_by_brand(per_item.values(), brand_of=lambda progress: progress.brand)
    per_brand = {
        name: BrandProgress(brand=name, items=tuple(items)) for name, items in grouped.items()
    }
    return ProgressSummary(per_item=per_item, per_brand=per_brand)
