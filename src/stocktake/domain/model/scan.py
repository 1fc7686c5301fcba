"""Scan events: the append-only record of what counters observed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from stocktake.domain.errors import ValidationError
from stocktake.domain.model.enums import ScanKind


def new_event_id() -> UUID:
    return uuid4()


@dataclass(frozen=True, slots=True, kw_only=True)
class ScanEvent:
    """One quantity observation by one user for one code.

    ``SCAN`` events always carry a positive quantity. ``ADJUSTMENT`` events carry
    a signed, non-zero delta and represent corrections; they are never edited
    in place either.
    """

    count_id: str
    user_id: str
    code: str
    quantity: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    kind: ScanKind = ScanKind.SCAN
    id: UUID = field(default_factory=new_event_id)

    def __post_init__(self) -> None:
        if not self.code or not self.code.strip():
            raise ValidationError("Scan code must not be empty", field="code")
        if not self.user_id:
            raise ValidationError("Scan user must not be empty", field="user_id")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError(
                f"Scan quantity must be an integer, got {self.quantity!r}", field="quantity"
            )
        if self.kind is ScanKind.SCAN and self.quantity <= 0:
            raise ValidationError(
                f"Scan quantity must be positive, got {self.quantity}", field="quantity"
            )
        if self.kind is ScanKind.ADJUSTMENT and self.quantity == 0:
            raise ValidationError("Adjustment delta must not be zero", field="quantity")
