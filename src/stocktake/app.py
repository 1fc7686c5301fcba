"""Application wiring: build a reconciliation engine on the configured adapters."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from stocktake.adapters.observability import LoggingFailureSink
from stocktake.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCountUnitOfWork,
    is_started,
    startup,
)
from stocktake.config import get_engine_config
from stocktake.domain.ports.unit_of_work import CountUnitOfWork
from stocktake.domain.reconciliation import CountReconciliationEngine, HistoryRecorder

if TYPE_CHECKING:
    from stocktake.domain.ports import FailureSink

UnitOfWorkFactory = Callable[[], CountUnitOfWork]


log = getLogger(__name__)


def build_engine(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    failure_sink: FailureSink | None = None,
    async_history: bool | None = None,
    database_uri: str | None = None,
) -> CountReconciliationEngine:
    """Return an engine backed by SQLAlchemy unless a factory is supplied."""

    if unit_of_work_factory is None:
        if not is_started():
            startup(database_uri=database_uri)
        effective_uow: UnitOfWorkFactory = SqlAlchemyCountUnitOfWork
    else:
        effective_uow = unit_of_work_factory

    if async_history is None:
        async_history = get_engine_config().async_history

    history = HistoryRecorder(
        unit_of_work_factory=effective_uow,
        failure_sink=failure_sink or LoggingFailureSink(),
        asynchronous=async_history,
    )
    log.debug("Built reconciliation engine (async_history=%s)", async_history)
    return CountReconciliationEngine(unit_of_work_factory=effective_uow, history=history)
