from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from stocktake.adapters.sqlalchemy.migrations import upgrade_head
from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCountUnitOfWork,
    shutdown,
    startup,
)
from stocktake.domain.reconciliation import CountReconciliationEngine, HistoryRecorder
from tests.helpers.counts import TickingClock
from tests.helpers.memory import InMemoryDatabase, RecordingFailureSink, unit_of_work_factory

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def memory_db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def failure_sink() -> RecordingFailureSink:
    return RecordingFailureSink()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def engine(
    memory_db: InMemoryDatabase,
    failure_sink: RecordingFailureSink,
    clock: TickingClock,
) -> Iterator[CountReconciliationEngine]:
    factory = unit_of_work_factory(memory_db)
    history = HistoryRecorder(
        unit_of_work_factory=factory,
        failure_sink=failure_sink,
        clock=clock,
    )
    reconciliation = CountReconciliationEngine(
        unit_of_work_factory=factory,
        history=history,
        clock=clock,
    )
    try:
        yield reconciliation
    finally:
        reconciliation.close()


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'stocktake.db'}", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyCountUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyCountUnitOfWork:
        return SqlAlchemyCountUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
