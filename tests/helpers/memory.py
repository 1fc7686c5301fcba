"""In-memory stores and unit of work for exercising the engine without a database."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from stocktake.domain.errors import StorageUnavailable, ValidationError
from stocktake.domain.ports.unit_of_work import CountRepositories

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from uuid import UUID

    from stocktake.domain.model import Count, HistoryEntry, ScanEvent


@dataclass
class InMemoryDatabase:
    """Shared state behind every unit of work of one test.

    ``scan_failure``, ``count_failure`` and ``history_failure`` are raised by
    the matching write when set. ``on_write`` is called with the write's name
    while its transaction still holds the count claim.
    """

    counts: dict[str, Count] = field(default_factory=dict)
    events: list[ScanEvent] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    history_failure: Exception | None = None
    scan_failure: Exception | None = None
    count_failure: Exception | None = None
    on_write: Callable[[str], None] | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)
    count_locks: dict[str, threading.Lock] = field(default_factory=dict)
    next_sequence: int = 1

    def count_lock(self, count_id: str) -> threading.Lock:
        with self.lock:
            return self.count_locks.setdefault(count_id, threading.Lock())

    def written(self, operation: str) -> None:
        if self.on_write is not None:
            self.on_write(operation)


class _Staged:
    def __init__(self) -> None:
        self.operations: list[Callable[[], None]] = []
        self.claims: list[threading.Lock] = []

    def release(self) -> None:
        claims, self.claims = self.claims, []
        for claim in claims:
            claim.release()


class InMemoryCountStore:
    def __init__(self, database: InMemoryDatabase, staged: _Staged) -> None:
        self._db = database
        self._staged = staged

    def get(self, count_id: str) -> Count | None:
        with self._db.lock:
            count = self._db.counts.get(count_id)
            return replace(count) if count is not None else None

    def add(self, count: Count) -> None:
        snapshot = replace(count)

        def apply() -> None:
            if snapshot.id in self._db.counts:
                raise ValidationError(f"Count {snapshot.id} already exists", field="count_id")
            self._db.counts[snapshot.id] = snapshot

        self._staged.operations.append(apply)

    def claim_open(self, count_id: str) -> bool:
        claim = self._db.count_lock(count_id)
        if claim not in self._staged.claims:
            claim.acquire()
            self._staged.claims.append(claim)
        with self._db.lock:
            stored = self._db.counts.get(count_id)
            return stored is not None and not stored.is_finalized

    def mark_finalized(self, count: Count) -> bool:
        if self._db.count_failure is not None:
            raise self._db.count_failure
        self._db.written("count.mark_finalized")
        with self._db.lock:
            stored = self._db.counts.get(count.id)
            if stored is None or stored.is_finalized:
                return False
            self._db.counts[count.id] = replace(count)
            return True

    def list_all(self) -> list[Count]:
        with self._db.lock:
            counts = [replace(count) for count in self._db.counts.values()]
        return sorted(counts, key=lambda count: (count.created_at, count.id))


class InMemoryScanEventStore:
    def __init__(self, database: InMemoryDatabase, staged: _Staged) -> None:
        self._db = database
        self._staged = staged

    def append(self, event: ScanEvent) -> UUID:
        if self._db.scan_failure is not None:
            raise self._db.scan_failure
        self._staged.operations.append(lambda: self._db.events.append(event))
        self._db.written("scan.append")
        return event.id

    def list_by_count(self, count_id: str) -> list[ScanEvent]:
        with self._db.lock:
            return [event for event in self._db.events if event.count_id == count_id]

    def current_quantity(self, count_id: str, user_id: str, code: str) -> int:
        with self._db.lock:
            return sum(
                event.quantity
                for event in self._db.events
                if event.count_id == count_id and event.user_id == user_id and event.code == code
            )


class InMemoryHistoryStore:
    def __init__(self, database: InMemoryDatabase, staged: _Staged) -> None:
        self._db = database
        self._staged = staged

    def append(self, entry: HistoryEntry) -> int:
        if self._db.history_failure is not None:
            raise self._db.history_failure
        with self._db.lock:
            sequence = self._db.next_sequence
            self._db.next_sequence += 1
        stored = replace(entry, sequence=sequence)
        self._staged.operations.append(lambda: self._db.history.append(stored))
        return sequence

    def list_by_count(self, count_id: str) -> list[HistoryEntry]:
        with self._db.lock:
            entries = [entry for entry in self._db.history if entry.count_id == count_id]
        return sorted(entries, key=lambda entry: (entry.timestamp, entry.sequence or 0))


class InMemoryUnitOfWork:
    """Buffers appends until ``commit``; compare-and-set finalization applies at once.

    Count claims are held until ``commit`` or ``rollback``.
    """

    def __init__(self, database: InMemoryDatabase) -> None:
        self._db = database
        self._staged = _Staged()
        self.commits = 0
        self.repositories = CountRepositories(
            counts=InMemoryCountStore(database, self._staged),
            scans=InMemoryScanEventStore(database, self._staged),
            history=InMemoryHistoryStore(database, self._staged),
        )

    def __enter__(self) -> InMemoryUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        return False

    def commit(self) -> None:
        try:
            with self._db.lock:
                operations, self._staged.operations = self._staged.operations, []
                for operation in operations:
                    operation()
        finally:
            self._staged.release()
        self.commits += 1

    def rollback(self) -> None:
        self._staged.operations = []
        self._staged.release()


def unit_of_work_factory(database: InMemoryDatabase) -> Callable[[], InMemoryUnitOfWork]:
    def factory() -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(database)

    return factory


class RecordingFailureSink:
    """Failure sink that keeps every report for assertions."""

    def __init__(self) -> None:
        self.reports: list[tuple[str, BaseException, dict[str, object]]] = []
        self._lock = threading.Lock()

    def report(self, operation: str, error: BaseException, **context: object) -> None:
        with self._lock:
            self.reports.append((operation, error, context))


def broken_store() -> StorageUnavailable:
    return StorageUnavailable("history store offline")
