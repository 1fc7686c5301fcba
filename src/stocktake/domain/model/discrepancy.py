"""Frozen outcome of finalizing a count."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from stocktake.domain.model.enums import DiscrepancyKind


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemTally:
    """Scanned total against the expected quantity for one expected item."""

    code: str
    expected: int
    scanned: int

    @property
    def diff(self) -> int:
        return self.scanned - self.expected


@dataclass(frozen=True, slots=True, kw_only=True)
class Discrepancy:
    """Tagged discrepancy record.

    ``expected`` is ``None`` for ``EXTRA`` records: the code is not part of the
    expectation set at all.
    """

    kind: DiscrepancyKind
    code: str
    scanned: int
    expected: int | None = None
    description: str | None = None

    @property
    def diff(self) -> int:
        return self.scanned - (self.expected or 0)


@dataclass(frozen=True, slots=True, kw_only=True)
class DiscrepancyResult:
    count_id: str
    lines: tuple[ItemTally, ...] = ()
    discrepancies: tuple[Discrepancy, ...] = ()
    computed_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def missing(self) -> tuple[Discrepancy, ...]:
        return self._of_kind(DiscrepancyKind.MISSING)

    @property
    def over(self) -> tuple[Discrepancy, ...]:
        return self._of_kind(DiscrepancyKind.OVER)

    @property
    def extra(self) -> tuple[Discrepancy, ...]:
        return self._of_kind(DiscrepancyKind.EXTRA)

    @property
    def is_exact(self) -> bool:
        return not self.discrepancies

    def _of_kind(self, kind: DiscrepancyKind) -> tuple[Discrepancy, ...]:
        return tuple(record for record in self.discrepancies if record.kind is kind)
