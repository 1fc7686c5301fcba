"""Error kinds raised by the reconciliation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stocktake.domain.model import DiscrepancyResult


class StocktakeError(Exception):
    """Base class for all engine errors."""


class ValidationError(StocktakeError, ValueError):
    """Raised when scan or expectation input is malformed.

    Nothing is written when this is raised.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CountNotFoundError(StocktakeError, LookupError):
    """Raised when a count id is unknown to the snapshot store."""

    def __init__(self, count_id: str) -> None:
        super().__init__(f"Count not found: {count_id}")
        self.count_id = count_id


class CountClosedError(StocktakeError):
    """Raised when a scan mutation targets a finalized count."""

    def __init__(self, count_id: str) -> None:
        super().__init__(f"Count {count_id} is finalized and no longer accepts scans")
        self.count_id = count_id


class AlreadyFinalizedError(StocktakeError):
    """Raised by strict finalization when the count was finalized before.

    ``result`` holds the persisted discrepancy result, which stays authoritative.
    """

    def __init__(self, count_id: str, result: DiscrepancyResult) -> None:
        super().__init__(f"Count {count_id} is already finalized")
        self.count_id = count_id
        self.result = result


class StorageUnavailable(StocktakeError):
    """Raised by adapters when the backing store cannot be reached or written."""
