"""SQLAlchemy table metadata for counts, scan events and history."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
)

from stocktake.domain.model import HistoryOperation, ScanKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

count_table = Table(
    "count",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("finalized_at", UTCDateTime, nullable=True),
    Column("finalized_by", String, nullable=True),
    Column("clarification", Text, nullable=True),
    Column("result", JSON, nullable=True),
    # bumped by every claim_open; writers of one count serialize on this row
    Column("revision", Integer, nullable=False, default=0, server_default="0"),
)

expected_item_table = Table(
    "expected_item",
    metadata,
    Column(
        "count_id",
        String,
        ForeignKey("count.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("code", String, primary_key=True),
    Column("position", Integer, nullable=False),
    Column("description", String, nullable=True),
    Column("brand", String, nullable=True),
    Column("expected", Integer, nullable=False),
)

scan_event_table = Table(
    "scan_event",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", UUIDColumnType, nullable=False, unique=True),
    Column("count_id", String, ForeignKey("count.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String, nullable=False),
    Column("code", String, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("kind", Enum(ScanKind, native_enum=False), nullable=False),
    Column("timestamp", UTCDateTime, nullable=False),
    Index("ix_scan_event_count_user_code", "count_id", "user_id", "code"),
)

history_entry_table = Table(
    "history_entry",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("count_id", String, nullable=False, index=True),
    Column("operation", Enum(HistoryOperation, native_enum=False), nullable=False),
    Column("actor", String, nullable=False),
    Column("code", String, nullable=False),
    Column("description", String, nullable=True),
    Column("old_value", Integer, nullable=True),
    Column("new_value", Integer, nullable=True),
    Column("timestamp", UTCDateTime, nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
