"""Initial schema: counts, expectation sets, scan events and history

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from stocktake.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "count",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("finalized_at", UTCDateTime(), nullable=True),
        sa.Column("finalized_by", sa.String(), nullable=True),
        sa.Column("clarification", sa.Text(), nullable=True),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("revision", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_count")),
    )
    op.create_table(
        "expected_item",
        sa.Column("count_id", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("brand", sa.String(), nullable=True),
        sa.Column("expected", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["count_id"],
            ["count.id"],
            name=op.f("fk_expected_item_count_id_count"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("count_id", "code", name=op.f("pk_expected_item")),
    )
    op.create_table(
        "scan_event",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("count_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column(
            "kind",
            sa.Enum("SCAN", "ADJUSTMENT", name="scankind", native_enum=False),
            nullable=False,
        ),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["count_id"],
            ["count.id"],
            name=op.f("fk_scan_event_count_id_count"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("seq", name=op.f("pk_scan_event")),
        sa.UniqueConstraint("id", name=op.f("uq_scan_event_id")),
    )
    op.create_index(
        "ix_scan_event_count_user_code",
        "scan_event",
        ["count_id", "user_id", "code"],
        unique=False,
    )
    op.create_table(
        "history_entry",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("count_id", sa.String(), nullable=False),
        sa.Column(
            "operation",
            sa.Enum("INSERT", "UPDATE", "DELETE", name="historyoperation", native_enum=False),
            nullable=False,
        ),
        sa.Column("actor", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("old_value", sa.Integer(), nullable=True),
        sa.Column("new_value", sa.Integer(), nullable=True),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("seq", name=op.f("pk_history_entry")),
    )
    op.create_index(
        op.f("ix_history_entry_count_id"), "history_entry", ["count_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_history_entry_count_id"), table_name="history_entry")
    op.drop_table("history_entry")
    op.drop_index("ix_scan_event_count_user_code", table_name="scan_event")
    op.drop_table("scan_event")
    op.drop_table("expected_item")
    op.drop_table("count")
