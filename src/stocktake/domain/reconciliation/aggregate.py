"""Fold scan events into per-user and per-code totals.

Every function here is a pure sum over the event sequence, so the result does
not depend on arrival order and replaying the same events always yields the
same totals. Timestamps never weigh into amounts.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stocktake.domain.model import ScanEvent


type QuantityByCode = dict[str, int]


@dataclass(frozen=True, slots=True)
class UserAggregate:
    """Current quantities one user has counted, keyed by code."""

    user_id: str
    quantities: QuantityByCode = field(default_factory=dict[str, int])

    @property
    def total_items(self) -> int:
        """Number of distinct codes with a positive quantity."""

        return sum(1 for quantity in self.quantities.values() if quantity > 0)

    @property
    def total_units(self) -> int:
        return sum(self.quantities.values())


def fold_by_user_and_code(events: Iterable[ScanEvent]) -> dict[tuple[str, str], int]:
    """Sum event quantities per ``(user_id, code)`` pair."""

    totals: defaultdict[tuple[str, str], int] = defaultdict(int)
    for event in events:
        totals[(event.user_id, event.code)] += event.quantity
    return dict(totals)


def aggregate_by_user(events: Iterable[ScanEvent]) -> dict[str, UserAggregate]:
    """Build one ``UserAggregate`` per user that still holds a non-zero quantity.

    Users and codes are emitted in sorted order so that two folds of the same
    events compare equal item by item.
    """

    per_user: defaultdict[str, dict[str, int]] = defaultdict(dict)
    for (user_id, code), quantity in sorted(fold_by_user_and_code(events).items()):
        if quantity == 0:
            continue
        per_user[user_id][code] = quantity
    return {
        user_id: UserAggregate(user_id=user_id, quantities=quantities)
        for user_id, quantities in per_user.items()
    }


def totals_by_code(events: Iterable[ScanEvent]) -> QuantityByCode:
    """Sum quantities per code across all users."""

    totals: defaultdict[str, int] = defaultdict(int)
    for event in events:
        totals[event.code] += event.quantity
    return dict(totals)


def combine_user_aggregates(aggregates: Iterable[UserAggregate]) -> QuantityByCode:
    """Sum per-code quantities across user aggregates."""

    totals: defaultdict[str, int] = defaultdict(int)
    for aggregate in aggregates:
        for code, quantity in aggregate.quantities.items():
            totals[code] += quantity
    return dict(totals)


def codes_in_first_seen_order(events: Iterable[ScanEvent]) -> list[str]:
    """Return each scanned code once, in the order it first appears in ``events``."""

    seen: dict[str, None] = {}
    for event in events:
        seen.setdefault(event.code, None)
    return list(seen)
