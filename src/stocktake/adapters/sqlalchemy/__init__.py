"""SQLAlchemy adapter package for stocktake."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .repositories import (
    SqlAlchemyCountRepository,
    SqlAlchemyHistoryRepository,
    SqlAlchemyScanEventRepository,
)
from .unit_of_work import (
    SqlAlchemyCountUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCountRepository",
    "SqlAlchemyCountUnitOfWork",
    "SqlAlchemyHistoryRepository",
    "SqlAlchemyScanEventRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
