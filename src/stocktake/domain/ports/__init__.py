"""Domain port definitions for adapters."""

from __future__ import annotations

from .observability import FailureSink
from .persistence import CountStore, HistoryStore, ScanEventStore
from .unit_of_work import (
    CountRepositories,
    CountUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CountRepositories",
    "CountStore",
    "CountUnitOfWork",
    "FailureSink",
    "HistoryStore",
    "RepositoryCollection",
    "ScanEventStore",
    "UnitOfWork",
]
