from __future__ import annotations

from itertools import permutations

from stocktake.domain.model import ScanKind
from stocktake.domain.reconciliation.aggregate import (
    aggregate_by_user,
    codes_in_first_seen_order,
    combine_user_aggregates,
    totals_by_code,
)
from tests.helpers.counts import make_scan


def test_aggregate_sums_per_user_and_code() -> None:
    events = [
        make_scan("A", 2, user_id="alice"),
        make_scan("A", 3, user_id="alice"),
        make_scan("B", 1, user_id="bob"),
        make_scan("A", 1, user_id="bob"),
    ]

    aggregates = aggregate_by_user(events)

    assert aggregates["alice"].quantities == {"A": 5}
    assert aggregates["bob"].quantities == {"A": 1, "B": 1}
    assert aggregates["bob"].total_items == 2
    assert aggregates["bob"].total_units == 2


def test_aggregate_is_independent_of_arrival_order() -> None:
    events = [
        make_scan("A", 2, user_id="alice", minutes=3),
        make_scan("B", 1, user_id="bob", minutes=1),
        make_scan("A", 4, user_id="bob", minutes=2),
        make_scan("A", -2, user_id="alice", kind=ScanKind.ADJUSTMENT, minutes=0),
    ]

    expected = aggregate_by_user(events)
    for ordering in permutations(events):
        assert aggregate_by_user(ordering) == expected
        assert totals_by_code(ordering) == {"A": 4, "B": 1}


def test_adjustments_that_cancel_a_code_drop_it_and_the_user() -> None:
    events = [
        make_scan("A", 3, user_id="alice"),
        make_scan("A", -3, user_id="alice", kind=ScanKind.ADJUSTMENT),
        make_scan("B", 2, user_id="bob"),
    ]

    aggregates = aggregate_by_user(events)

    assert "alice" not in aggregates
    assert aggregates["bob"].quantities == {"B": 2}


def test_empty_event_sequence_aggregates_to_nothing() -> None:
    assert aggregate_by_user([]) == {}
    assert totals_by_code([]) == {}


def test_combined_aggregates_match_direct_totals() -> None:
    events = [
        make_scan("A", 2, user_id="alice"),
        make_scan("A", 1, user_id="bob"),
        make_scan("C", 5, user_id="carol"),
    ]

    combined = combine_user_aggregates(aggregate_by_user(events).values())

    assert combined == totals_by_code(events)


def test_codes_in_first_seen_order_keeps_first_occurrence() -> None:
    events = [
        make_scan("Z"),
        make_scan("A"),
        make_scan("Z"),
        make_scan("M"),
    ]

    assert codes_in_first_seen_order(events) == ["Z", "A", "M"]
