from __future__ import annotations

import pytest

from stocktake.domain.errors import ValidationError
from stocktake.domain.model import (
    Count,
    CountStatus,
    DiscrepancyResult,
    ExpectedItem,
    ScanEvent,
    ScanKind,
)
from tests.helpers.counts import BASE_TIME, make_count, make_items


def test_open_count_keeps_expectation_order() -> None:
    count = make_count(items=make_items(("B", 1, "Acme nut"), ("A", 2)))

    assert [item.code for item in count.expected_items] == ["B", "A"]
    assert count.status is CountStatus.OPEN
    assert count.description_for("B") == "Acme nut"
    assert count.description_for("missing") is None


@pytest.mark.parametrize(
    ("count_id", "items", "field"),
    [
        ("", [ExpectedItem(code="A", expected=1)], "count_id"),
        ("R", [ExpectedItem(code=" ", expected=1)], "code"),
        ("R", [ExpectedItem(code="A", expected=1), ExpectedItem(code="A", expected=2)], "code"),
        ("R", [ExpectedItem(code="A", expected=-1)], "expected"),
        ("R", [ExpectedItem(code="A", expected=True)], "expected"),
    ],
)
def test_open_count_rejects_invalid_expectations(
    count_id: str, items: list[ExpectedItem], field: str
) -> None:
    with pytest.raises(ValidationError) as exc:
        Count.open(count_id, items)

    assert exc.value.field == field


def test_mark_finalized_is_one_way() -> None:
    count = make_count()
    result = DiscrepancyResult(count_id=count.id, computed_at=BASE_TIME)

    count.mark_finalized(result, clarification="shelf 3 damaged", actor="lead")

    assert count.status is CountStatus.FINALIZED
    assert count.finalized_at == BASE_TIME
    assert count.finalized_by == "lead"
    with pytest.raises(RuntimeError):
        count.mark_finalized(result)


@pytest.mark.parametrize(
    ("quantity", "kind"),
    [
        (0, ScanKind.SCAN),
        (-1, ScanKind.SCAN),
        (0, ScanKind.ADJUSTMENT),
        (1.5, ScanKind.SCAN),
        (True, ScanKind.SCAN),
    ],
)
def test_scan_event_rejects_invalid_quantities(quantity: object, kind: ScanKind) -> None:
    with pytest.raises(ValidationError):
        ScanEvent(count_id="R", user_id="alice", code="A", quantity=quantity, kind=kind)  # type: ignore[arg-type]


def test_scan_event_requires_code_and_user() -> None:
    with pytest.raises(ValidationError):
        ScanEvent(count_id="R", user_id="alice", code="  ", quantity=1)
    with pytest.raises(ValidationError):
        ScanEvent(count_id="R", user_id="", code="A", quantity=1)


def test_negative_adjustment_is_allowed() -> None:
    event = ScanEvent(count_id="R", user_id="alice", code="A", quantity=-2, kind=ScanKind.ADJUSTMENT)

    assert event.quantity == -2
