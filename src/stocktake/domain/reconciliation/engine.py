"""Reconciliation engine: the single entry point collaborators talk to.

Every write to a count first claims the count in the store, so writers of one
count serialize on that claim and a finalized count accepts no further events.
Reads recompute everything from the event sequence they load, so they never
observe partially applied state. Finalize additionally takes a per-count lock
so callers inside this process queue instead of contending on the store.
"""

from __future__ import annotations

import logging
import threading
import weakref
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stocktake.domain.errors import (
    AlreadyFinalizedError,
    CountClosedError,
    CountNotFoundError,
    ValidationError,
)
from stocktake.domain.model import Count, HistoryOperation, ScanEvent, ScanKind
from stocktake.domain.reconciliation.aggregate import (
    aggregate_by_user,
    combine_user_aggregates,
)
from stocktake.domain.reconciliation.discrepancy import resolve_discrepancies
from stocktake.domain.reconciliation.progress import calculate_progress
from stocktake.domain.reconciliation.report import (
    assemble_report,
    summarize_count,
    user_lines,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from stocktake.domain.model import DiscrepancyResult, ExpectedItem, HistoryEntry
    from stocktake.domain.ports import CountUnitOfWork
    from stocktake.domain.reconciliation.aggregate import UserAggregate
    from stocktake.domain.reconciliation.history import HistoryRecorder
    from stocktake.domain.reconciliation.progress import ProgressSummary
    from stocktake.domain.reconciliation.report import CountReport, CountSummary, ReportLine

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class CountReconciliationEngine:
    """Ingest scans, derive progress and freeze discrepancies for counts."""

    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], CountUnitOfWork],
        history: HistoryRecorder,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._history = history
        self._clock = clock
        self._finalize_locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._finalize_locks_guard = threading.Lock()

    # Lifecycle ---------------------------------------------------------------

    def open_count(
        self,
        count_id: str,
        expected_items: Iterable[ExpectedItem],
        *,
        name: str | None = None,
        created_at: datetime | None = None,
    ) -> Count:
        count = Count.open(
            count_id,
            expected_items,
            name=name,
            created_at=created_at or self._clock(),
        )
        with self._unit_of_work_factory() as uow:
            if uow.repositories.counts.get(count_id) is not None:
                raise ValidationError(f"Count {count_id} already exists", field="count_id")
            uow.repositories.counts.add(count)
            uow.commit()
        log.info("Opened count %s with %d expected items", count_id, len(count.expected_items))
        return count

    def get_count(self, count_id: str) -> Count:
        with self._unit_of_work_factory() as uow:
            return self._require_count(uow, count_id)

    def finalize(
        self,
        count_id: str,
        clarification: str | None = None,
        *,
        actor: str | None = None,
        strict: bool = False,
    ) -> DiscrepancyResult:
        """Freeze the discrepancy result of ``count_id``.

        Exactly one caller computes and persists the result. Every later or
        concurrent caller receives the persisted result; with ``strict=True``
        they get it through ``AlreadyFinalizedError`` instead.
        """

        with self._finalize_lock(count_id):
            with self._unit_of_work_factory() as uow:
                claimed = uow.repositories.counts.claim_open(count_id)
                count = self._require_count(uow, count_id)
                if not claimed:
                    uow.rollback()
                    return self._cached_result(count, strict=strict)

                events = uow.repositories.scans.list_by_count(count_id)
                result = resolve_discrepancies(count, events, computed_at=self._clock())
                count.mark_finalized(result, clarification=clarification, actor=actor)
                if uow.repositories.counts.mark_finalized(count):
                    uow.commit()
                    log.info(
                        "Finalized count %s: %d events, %d discrepancies",
                        count_id,
                        len(events),
                        len(result.discrepancies),
                    )
                    return result
                uow.rollback()

            log.info("Count %s was finalized by another writer", count_id)
            with self._unit_of_work_factory() as uow:
                return self._cached_result(self._require_count(uow, count_id), strict=strict)

    # Ingestion ---------------------------------------------------------------

    def submit_scan(
        self,
        count_id: str,
        user_id: str,
        code: str,
        quantity: int,
        timestamp: datetime | None = None,
    ) -> UUID:
        """Append one scan and audit the resulting quantity change."""

        event = ScanEvent(
            count_id=count_id,
            user_id=user_id,
            code=_clean_code(code),
            quantity=quantity,
            timestamp=timestamp or self._clock(),
        )
        with self._unit_of_work_factory() as uow:
            count = self._claim_open_count(uow, count_id)
            previous = uow.repositories.scans.current_quantity(count_id, user_id, event.code)
            event_id = uow.repositories.scans.append(event)
            uow.commit()

        log.debug("Scan %s: %s x%d by %s in %s", event_id, event.code, quantity, user_id, count_id)
        if previous == 0:
            self._record(count, HistoryOperation.INSERT, user_id, event.code, None, quantity)
        else:
            self._record(
                count, HistoryOperation.UPDATE, user_id, event.code, previous, previous + quantity
            )
        return event_id

    def set_quantity(
        self,
        count_id: str,
        user_id: str,
        code: str,
        quantity: int,
        timestamp: datetime | None = None,
    ) -> UUID | None:
        """Overwrite a user's current quantity for a code.

        The overwrite is stored as an adjustment event carrying the delta.
        Setting 0 removes the code for that user. Returns ``None`` when the
        quantity is already current.
        """

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValidationError(
                f"Quantity must be a non-negative integer, got {quantity!r}", field="quantity"
            )
        code = _clean_code(code)
        count, previous, event_id = self._adjust_to(count_id, user_id, code, quantity, timestamp)
        if event_id is None:
            return None

        if quantity == 0:
            self._record(count, HistoryOperation.DELETE, user_id, code, previous, None)
        elif previous == 0:
            self._record(count, HistoryOperation.INSERT, user_id, code, None, quantity)
        else:
            self._record(count, HistoryOperation.UPDATE, user_id, code, previous, quantity)
        return event_id

    def remove_scan(
        self,
        count_id: str,
        user_id: str,
        code: str,
        timestamp: datetime | None = None,
    ) -> UUID:
        """Cancel everything ``user_id`` counted for ``code``."""

        code = _clean_code(code)
        count, previous, event_id = self._adjust_to(count_id, user_id, code, 0, timestamp)
        if event_id is None:
            raise ValidationError(
                f"User {user_id} has nothing counted for {code} in count {count_id}",
                field="code",
            )
        self._record(count, HistoryOperation.DELETE, user_id, code, previous, None)
        return event_id

    # Reads -------------------------------------------------------------------

    def get_aggregate(self, count_id: str) -> dict[str, UserAggregate]:
        _count, events = self._load(count_id)
        return aggregate_by_user(events)

    def get_progress(self, count_id: str) -> ProgressSummary:
        count, events = self._load(count_id)
        aggregates = aggregate_by_user(events)
        return calculate_progress(
            count.expected_items, combine_user_aggregates(aggregates.values())
        )

    def get_report(self, count_id: str, *, include_history: bool = False) -> CountReport:
        count, events = self._load(count_id)
        aggregates = aggregate_by_user(events)
        progress = calculate_progress(
            count.expected_items, combine_user_aggregates(aggregates.values())
        )
        history = self._history.list_by_count(count_id) if include_history else None
        return assemble_report(count, aggregates, progress, history=history)

    def get_history(self, count_id: str) -> tuple[HistoryEntry, ...]:
        self.get_count(count_id)
        return self._history.list_by_count(count_id)

    def user_items(self, count_id: str, user_id: str) -> tuple[ReportLine, ...]:
        """Current non-zero quantities of one user, e.g. to restore a scanning session."""

        count, events = self._load(count_id)
        aggregate = aggregate_by_user(events).get(user_id)
        if aggregate is None:
            return ()
        return user_lines(count, aggregate)

    def list_counts(self) -> list[CountSummary]:
        summaries: list[CountSummary] = []
        with self._unit_of_work_factory() as uow:
            counts = list(uow.repositories.counts.list_all())
            for count in counts:
                aggregates = aggregate_by_user(uow.repositories.scans.list_by_count(count.id))
                totals = combine_user_aggregates(aggregates.values())
                progress = calculate_progress(count.expected_items, totals)
                summaries.append(
                    summarize_count(count, progress, scanned_units=sum(totals.values()))
                )
        return summaries

    def close(self) -> None:
        self._history.close()

    # Internals ---------------------------------------------------------------

    def _load(self, count_id: str) -> tuple[Count, Sequence[ScanEvent]]:
        with self._unit_of_work_factory() as uow:
            count = self._require_count(uow, count_id)
            events = uow.repositories.scans.list_by_count(count_id)
        return count, events

    def _adjust_to(
        self,
        count_id: str,
        user_id: str,
        code: str,
        target: int,
        timestamp: datetime | None,
    ) -> tuple[Count, int, UUID | None]:
        """Append the adjustment that brings ``user_id``'s quantity for ``code`` to ``target``."""

        with self._unit_of_work_factory() as uow:
            count = self._claim_open_count(uow, count_id)
            previous = uow.repositories.scans.current_quantity(count_id, user_id, code)
            if previous == target:
                return count, previous, None
            event_id = uow.repositories.scans.append(
                ScanEvent(
                    count_id=count_id,
                    user_id=user_id,
                    code=code,
                    quantity=target - previous,
                    timestamp=timestamp or self._clock(),
                    kind=ScanKind.ADJUSTMENT,
                )
            )
            uow.commit()
        return count, previous, event_id

    def _record(
        self,
        count: Count,
        operation: HistoryOperation,
        actor: str,
        code: str,
        old_value: int | None,
        new_value: int | None,
    ) -> None:
        self._history.record(
            operation,
            actor,
            code,
            count.description_for(code),
            old_value,
            new_value,
            count.id,
        )

    def _finalize_lock(self, count_id: str) -> threading.Lock:
        with self._finalize_locks_guard:
            lock = self._finalize_locks.get(count_id)
            if lock is None:
                lock = threading.Lock()
                self._finalize_locks[count_id] = lock
            return lock

    @staticmethod
    def _require_count(uow: CountUnitOfWork, count_id: str) -> Count:
        count = uow.repositories.counts.get(count_id)
        if count is None:
            raise CountNotFoundError(count_id)
        return count

    @classmethod
    def _claim_open_count(cls, uow: CountUnitOfWork, count_id: str) -> Count:
        """Claim ``count_id`` for the current transaction; quantities read afterwards are stable."""

        claimed = uow.repositories.counts.claim_open(count_id)
        count = cls._require_count(uow, count_id)
        if not claimed:
            raise CountClosedError(count_id)
        return count

    @staticmethod
    def _cached_result(count: Count, *, strict: bool) -> DiscrepancyResult:
        if count.result is None:
            raise RuntimeError(f"Count {count.id} is finalized without a stored result")
        if strict:
            raise AlreadyFinalizedError(count.id, count.result)
        log.debug("Count %s already finalized; returning stored result", count.id)
        return count.result


def _clean_code(code: str) -> str:
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("Scan code must not be empty", field="code")
    return code.strip()
