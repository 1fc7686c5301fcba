"""Counts and their expectation sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stocktake.domain.errors import ValidationError
from stocktake.domain.model.enums import CountStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stocktake.domain.model.discrepancy import DiscrepancyResult


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpectedItem:
    """One line of the expectation set. Immutable once the count is opened."""

    code: str
    expected: int
    description: str | None = None
    brand: str | None = None


@dataclass(eq=False, kw_only=True)
class Count:
    """The unit of reconciliation.

    Open counts accept scans. ``mark_finalized`` is the one-way transition that
    freezes ``result``; after it only the audit history may grow.
    """

    id: str
    expected_items: tuple[ExpectedItem, ...] = ()
    name: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    clarification: str | None = None
    result: DiscrepancyResult | None = None

    @classmethod
    def open(
        cls,
        count_id: str,
        expected_items: Iterable[ExpectedItem],
        *,
        name: str | None = None,
        created_at: datetime | None = None,
    ) -> Count:
        if not count_id or not count_id.strip():
            raise ValidationError("Count id must not be empty", field="count_id")
        items = tuple(expected_items)
        seen: set[str] = set()
        for item in items:
            if not item.code or not item.code.strip():
                raise ValidationError("Expected item code must not be empty", field="code")
            if item.code in seen:
                raise ValidationError(
                    f"Duplicate expected code {item.code!r} in count {count_id}", field="code"
                )
            if isinstance(item.expected, bool) or not isinstance(item.expected, int):
                raise ValidationError(
                    f"Expected quantity for {item.code!r} must be an integer", field="expected"
                )
            if item.expected < 0:
                raise ValidationError(
                    f"Expected quantity for {item.code!r} must not be negative",
                    field="expected",
                )
            seen.add(item.code)
        return cls(
            id=count_id,
            expected_items=items,
            name=name,
            created_at=created_at or datetime.now(tz=UTC),
        )

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None

    @property
    def status(self) -> CountStatus:
        return CountStatus.FINALIZED if self.is_finalized else CountStatus.OPEN

    def expected_item(self, code: str) -> ExpectedItem | None:
        for item in self.expected_items:
            if item.code == code:
                return item
        return None

    def description_for(self, code: str) -> str | None:
        item = self.expected_item(code)
        return item.description if item is not None else None

    def mark_finalized(
        self,
        result: DiscrepancyResult,
        *,
        clarification: str | None = None,
        actor: str | None = None,
    ) -> None:
        if self.is_finalized:
            raise RuntimeError(f"Count {self.id} is already finalized")
        self.result = result
        self.finalized_at = result.computed_at
        self.clarification = clarification
        self.finalized_by = actor
