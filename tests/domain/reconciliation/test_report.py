from __future__ import annotations

from stocktake.domain.model import Count, CountStatus, ExpectedItem
from stocktake.domain.reconciliation.aggregate import aggregate_by_user, totals_by_code
from stocktake.domain.reconciliation.brands import OTHER_BRANDS
from stocktake.domain.reconciliation.discrepancy import resolve_discrepancies
from stocktake.domain.reconciliation.progress import calculate_progress
from stocktake.domain.reconciliation.report import assemble_report, summarize_count
from tests.helpers.counts import BASE_TIME, make_count, make_scan


def _count_with_brands() -> Count:
    return make_count(
        items=[
            ExpectedItem(code="A", expected=2, description="Acme bolt"),
            ExpectedItem(code="B", expected=1, description="nut", brand="Globex"),
        ]
    )


def test_report_groups_user_lines_by_brand() -> None:
    count = _count_with_brands()
    events = [
        make_scan("B", 1, user_id="zoe"),
        make_scan("A", 2, user_id="adam"),
        make_scan("Q", 4, user_id="adam"),
    ]
    aggregates = aggregate_by_user(events)
    progress = calculate_progress(count.expected_items, totals_by_code(events))

    report = assemble_report(count, aggregates, progress)

    assert [user.user_id for user in report.users] == ["adam", "zoe"]
    adam = report.users[0]
    assert list(adam.lines_by_brand) == ["ACME", OTHER_BRANDS]
    assert adam.lines_by_brand[OTHER_BRANDS][0].description is None
    assert adam.total_items == 2
    assert adam.total_units == 6
    assert list(report.users[1].lines_by_brand) == ["Globex"]
    assert report.header.status is CountStatus.OPEN
    assert report.header.expected_units == 3
    assert report.header.scanned_units == 7
    assert report.discrepancies is None
    assert report.history is None


def test_report_and_summary_of_finalized_count() -> None:
    count = _count_with_brands()
    events = [make_scan("A", 2)]
    result = resolve_discrepancies(count, events, computed_at=BASE_TIME)
    count.mark_finalized(result, clarification="box B lost", actor="lead")
    progress = calculate_progress(count.expected_items, totals_by_code(events))

    report = assemble_report(count, aggregate_by_user(events), progress, history=[])
    summary = summarize_count(count, progress, scanned_units=2)

    assert report.discrepancies == result
    assert report.history == ()
    assert report.header.clarification == "box B lost"
    assert report.header.finalized_by == "lead"
    assert report.header.finalized_at == BASE_TIME
    assert summary.status is CountStatus.FINALIZED
    assert summary.progress == 66
    assert summary.discrepancy_count == 1
