"""Best-effort audit trail of scan mutations.

History writes run in their own unit of work so that a failing audit store
never rolls back or fails the scan that triggered it. Failures go to the
configured ``FailureSink`` instead of the caller.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stocktake.domain.model import HistoryEntry

if TYPE_CHECKING:
    from collections.abc import Callable

    from stocktake.domain.model import HistoryOperation
    from stocktake.domain.ports import CountUnitOfWork, FailureSink

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class HistoryRecorder:
    """Record one ``HistoryEntry`` per mutation intent.

    With ``asynchronous=True`` writes are handed to a single worker thread. One
    worker drains its queue in submission order, which keeps per-count
    chronology intact.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], CountUnitOfWork],
        failure_sink: FailureSink,
        clock: Callable[[], datetime] = _utcnow,
        asynchronous: bool = False,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._failure_sink = failure_sink
        self._clock = clock
        self._executor: ThreadPoolExecutor | None = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="stocktake-history")
            if asynchronous
            else None
        )

    @property
    def is_asynchronous(self) -> bool:
        return self._executor is not None

    def record(
        self,
        operation: HistoryOperation,
        actor: str,
        code: str,
        description: str | None,
        old_value: int | None,
        new_value: int | None,
        count_id: str,
    ) -> None:
        entry = HistoryEntry(
            operation=operation,
            actor=actor,
            count_id=count_id,
            code=code,
            description=description,
            old_value=old_value,
            new_value=new_value,
            timestamp=self._clock(),
        )
        if self._executor is None:
            self._write(entry)
            return
        self._executor.submit(self._write, entry)

    def list_by_count(self, count_id: str) -> tuple[HistoryEntry, ...]:
        with self._unit_of_work_factory() as uow:
            return tuple(uow.repositories.history.list_by_count(count_id))

    def flush(self) -> None:
        """Block until every history write submitted so far has been attempted."""

        if self._executor is None:
            return
        self._executor.submit(lambda: None).result()

    def close(self) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        self._executor = None

    def _write(self, entry: HistoryEntry) -> None:
        try:
            with self._unit_of_work_factory() as uow:
                sequence = uow.repositories.history.append(entry)
                uow.commit()
        except Exception as exc:  # noqa: BLE001
            self._failure_sink.report(
                "history.record",
                exc,
                count_id=entry.count_id,
                code=entry.code,
                actor=entry.actor,
                operation=str(entry.operation),
            )
            return
        log.debug(
            "Recorded %s of %s by %s in count %s (sequence=%s)",
            entry.operation,
            entry.code,
            entry.actor,
            entry.count_id,
            sequence,
        )
