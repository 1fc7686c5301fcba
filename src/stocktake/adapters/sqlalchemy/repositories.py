"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stocktake.adapters.sqlalchemy.mappings import (
    count_table,
    expected_item_table,
    history_entry_table,
    scan_event_table,
)
from stocktake.domain.errors import StorageUnavailable, ValidationError
from stocktake.domain.model import (
    Count,
    Discrepancy,
    DiscrepancyKind,
    DiscrepancyResult,
    ExpectedItem,
    HistoryEntry,
    ItemTally,
    ScanEvent,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.orm import Session


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into ``StorageUnavailable``."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageUnavailable(f"{operation} failed: {exc}") from exc


class SqlAlchemyScanEventRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, event: ScanEvent) -> UUID:
        stmt = scan_event_table.insert().values(
            id=event.id,
            count_id=event.count_id,
            user_id=event.user_id,
            code=event.code,
            quantity=event.quantity,
            kind=event.kind,
            timestamp=event.timestamp,
        )
        with storage_errors("scan append"):
            self.session.execute(stmt)
        return event.id

    def list_by_count(self, count_id: str) -> list[ScanEvent]:
        stmt = (
            select(scan_event_table)
            .where(scan_event_table.c.count_id == count_id)
            .order_by(scan_event_table.c.seq)
        )
        with storage_errors("scan listing"):
            rows = self.session.execute(stmt).all()
        return [
            ScanEvent(
                id=row.id,
                count_id=row.count_id,
                user_id=row.user_id,
                code=row.code,
                quantity=row.quantity,
                kind=row.kind,
                timestamp=row.timestamp,
            )
            for row in rows
        ]

    def current_quantity(self, count_id: str, user_id: str, code: str) -> int:
        stmt = (
            select(func.coalesce(func.sum(scan_event_table.c.quantity), 0))
            .where(scan_event_table.c.count_id == count_id)
            .where(scan_event_table.c.user_id == user_id)
            .where(scan_event_table.c.code == code)
        )
        with storage_errors("scan lookup"):
            return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyHistoryRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: HistoryEntry) -> int:
        stmt = history_entry_table.insert().values(
            count_id=entry.count_id,
            operation=entry.operation,
            actor=entry.actor,
            code=entry.code,
            description=entry.description,
            old_value=entry.old_value,
            new_value=entry.new_value,
            timestamp=entry.timestamp,
        )
        with storage_errors("history append"):
            result = self.session.execute(stmt)
        return int(result.inserted_primary_key[0])

    def list_by_count(self, count_id: str) -> list[HistoryEntry]:
        stmt = (
            select(history_entry_table)
            .where(history_entry_table.c.count_id == count_id)
            .order_by(history_entry_table.c.timestamp, history_entry_table.c.seq)
        )
        with storage_errors("history listing"):
            rows = self.session.execute(stmt).all()
        return [
            HistoryEntry(
                operation=row.operation,
                actor=row.actor,
                count_id=row.count_id,
                code=row.code,
                description=row.description,
                old_value=row.old_value,
                new_value=row.new_value,
                timestamp=row.timestamp,
                sequence=row.seq,
            )
            for row in rows
        ]


class SqlAlchemyCountRepository:
    """Snapshot store for counts; expectation sets live in their own table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, count_id: str) -> Count | None:
        with storage_errors("count lookup"):
            row = self.session.execute(
                select(count_table).where(count_table.c.id == count_id)
            ).one_or_none()
            if row is None:
                return None
            item_rows = self.session.execute(
                select(expected_item_table)
                .where(expected_item_table.c.count_id == count_id)
                .order_by(expected_item_table.c.position)
            ).all()
        return self._to_count(row, [self._to_item(item_row) for item_row in item_rows])

    def add(self, count: Count) -> None:
        try:
            with storage_errors("count insert"):
                self.session.execute(
                    count_table.insert().values(
                        id=count.id,
                        name=count.name,
                        created_at=count.created_at,
                        finalized_at=count.finalized_at,
                        finalized_by=count.finalized_by,
                        clarification=count.clarification,
                        result=(
                            result_to_payload(count.result) if count.result is not None else None
                        ),
                    )
                )
                if count.expected_items:
                    self.session.execute(
                        expected_item_table.insert(),
                        [
                            {
                                "count_id": count.id,
                                "code": item.code,
                                "position": position,
                                "description": item.description,
                                "brand": item.brand,
                                "expected": item.expected,
                            }
                            for position, item in enumerate(count.expected_items)
                        ],
                    )
        except StorageUnavailable as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise ValidationError(
                    f"Count {count.id} already exists", field="count_id"
                ) from exc.__cause__
            raise

    def claim_open(self, count_id: str) -> bool:
        stmt = (
            update(count_table)
            .where(count_table.c.id == count_id)
            .where(count_table.c.finalized_at.is_(None))
            .values(revision=count_table.c.revision + 1)
        )
        with storage_errors("count claim"):
            result = self.session.execute(stmt)
        return result.rowcount == 1

    def mark_finalized(self, count: Count) -> bool:
        if count.result is None:
            raise ValueError(f"Count {count.id} has no result to persist")
        stmt = (
            update(count_table)
            .where(count_table.c.id == count.id)
            .where(count_table.c.finalized_at.is_(None))
            .values(
                finalized_at=count.finalized_at,
                finalized_by=count.finalized_by,
                clarification=count.clarification,
                result=result_to_payload(count.result),
            )
        )
        with storage_errors("count finalization"):
            result = self.session.execute(stmt)
        return result.rowcount == 1

    def list_all(self) -> list[Count]:
        with storage_errors("count listing"):
            rows = self.session.execute(
                select(count_table).order_by(count_table.c.created_at, count_table.c.id)
            ).all()
            item_rows = self.session.execute(
                select(expected_item_table).order_by(
                    expected_item_table.c.count_id, expected_item_table.c.position
                )
            ).all()
        items_by_count: defaultdict[str, list[ExpectedItem]] = defaultdict(list)
        for item_row in item_rows:
            items_by_count[item_row.count_id].append(self._to_item(item_row))
        return [self._to_count(row, items_by_count[row.id]) for row in rows]

    @staticmethod
    def _to_item(row: Row[Any]) -> ExpectedItem:
        return ExpectedItem(
            code=row.code,
            expected=row.expected,
            description=row.description,
            brand=row.brand,
        )

    @staticmethod
    def _to_count(row: Row[Any], items: list[ExpectedItem]) -> Count:
        return Count(
            id=row.id,
            name=row.name,
            created_at=row.created_at,
            expected_items=tuple(items),
            finalized_at=row.finalized_at,
            finalized_by=row.finalized_by,
            clarification=row.clarification,
            result=result_from_payload(row.result) if row.result is not None else None,
        )


def result_to_payload(result: DiscrepancyResult) -> dict[str, object]:
    """Serialize a discrepancy result for the JSON column."""

    return {
        "count_id": result.count_id,
        "computed_at": result.computed_at.isoformat(),
        "lines": [
            {"code": line.code, "expected": line.expected, "scanned": line.scanned}
            for line in result.lines
        ],
        "discrepancies": [
            {
                "kind": str(record.kind),
                "code": record.code,
                "expected": record.expected,
                "scanned": record.scanned,
                "description": record.description,
            }
            for record in result.discrepancies
        ],
    }


def result_from_payload(payload: dict[str, Any]) -> DiscrepancyResult:
    lines = cast(list[dict[str, Any]], payload.get("lines", []))
    records = cast(list[dict[str, Any]], payload.get("discrepancies", []))
    return DiscrepancyResult(
        count_id=payload["count_id"],
        computed_at=datetime.fromisoformat(payload["computed_at"]),
        lines=tuple(
            ItemTally(code=line["code"], expected=line["expected"], scanned=line["scanned"])
            for line in lines
        ),
        discrepancies=tuple(
            Discrepancy(
                kind=DiscrepancyKind(record["kind"]),
                code=record["code"],
                expected=record["expected"],
                scanned=record["scanned"],
                description=record.get("description"),
            )
            for record in records
        ),
    )


if TYPE_CHECKING:
    from stocktake.domain.ports import CountStore, HistoryStore, ScanEventStore

    _session_stub = cast("Session", object())
    _count_repo: CountStore = SqlAlchemyCountRepository(_session_stub)
    _scan_repo: ScanEventStore = SqlAlchemyScanEventRepository(_session_stub)
    _history_repo: HistoryStore = SqlAlchemyHistoryRepository(_session_stub)
