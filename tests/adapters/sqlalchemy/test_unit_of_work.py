from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from stocktake.adapters.sqlalchemy.migrations import upgrade_head
from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCountUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from stocktake.app import build_engine
from stocktake.domain.model import HistoryOperation
from tests.helpers.counts import make_count, make_items

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyCountUnitOfWork()


def test_startup_requires_force_for_reconfiguration(tmp_path: Path) -> None:
    engine_a = create_engine(f"sqlite+pysqlite:///{tmp_path / 'a.db'}", future=True)
    engine_b = create_engine(f"sqlite+pysqlite:///{tmp_path / 'b.db'}", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_upgrade_head_creates_schema_and_is_repeatable(sqlite_engine: Engine) -> None:
    upgrade_head(engine=sqlite_engine)

    tables = set(inspect(sqlite_engine).get_table_names())
    assert {"count", "expected_item", "scan_event", "history_entry"} <= tables


def test_uncommitted_work_is_discarded(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyCountUnitOfWork() as uow:
        uow.repositories.counts.add(make_count("R-1"))

    with SqlAlchemyCountUnitOfWork() as uow:
        assert uow.repositories.counts.get("R-1") is None


def test_failed_block_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyCountUnitOfWork() as uow:
        uow.repositories.counts.add(make_count("R-1"))
        raise RuntimeError("boom")

    with SqlAlchemyCountUnitOfWork() as uow:
        assert uow.repositories.counts.list_all() == []


def test_repositories_require_an_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyCountUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_engine_end_to_end_on_sqlite(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    engine = build_engine(async_history=False)
    try:
        engine.open_count("R-1", make_items(("A", 2, "Acme bolt"), ("B", 1)))
        engine.submit_scan("R-1", "alice", "A", 1)
        engine.submit_scan("R-1", "alice", "A", 2)
        engine.submit_scan("R-1", "bob", "Q", 1)
        engine.set_quantity("R-1", "alice", "A", 2)

        result = engine.finalize("R-1", "done", actor="lead")
        again = engine.finalize("R-1")
        history = engine.get_history("R-1")
        report = engine.get_report("R-1")
    finally:
        engine.close()

    assert again == result
    assert [record.code for record in result.discrepancies] == ["B", "Q"]
    assert [entry.operation for entry in history] == [
        HistoryOperation.INSERT,
        HistoryOperation.UPDATE,
        HistoryOperation.INSERT,
        HistoryOperation.UPDATE,
    ]
    assert report.header.clarification == "done"
    assert report.progress.overall == 66
