"""Ports for persisting counts, scan events and their audit history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from stocktake.domain.model import Count, HistoryEntry, ScanEvent


@runtime_checkable
class ScanEventStore(Protocol):
    """Append-only log of scan events."""

    def append(self, event: ScanEvent) -> UUID: ...

    def list_by_count(self, count_id: str) -> Sequence[ScanEvent]:
        """Return the events of ``count_id`` in append order.

        The returned sequence is a snapshot: events appended while the caller
        iterates do not show up in it.
        """
        ...

    def current_quantity(self, count_id: str, user_id: str, code: str) -> int:
        """Sum of all event quantities for one user and code."""
        ...


@runtime_checkable
class HistoryStore(Protocol):
    """Append-only audit log, kept apart from the scan event hot path."""

    def append(self, entry: HistoryEntry) -> int:
        """Persist ``entry`` and return its store-assigned sequence number."""
        ...

    def list_by_count(self, count_id: str) -> Sequence[HistoryEntry]:
        """Return entries ordered by ``(timestamp, sequence)`` ascending."""
        ...


@runtime_checkable
class CountStore(Protocol):
    """Snapshot store for count metadata and expectation sets."""

    def get(self, count_id: str) -> Count | None: ...

    def add(self, count: Count) -> None: ...

    def claim_open(self, count_id: str) -> bool:
        """Hold the write lock on ``count_id`` until the transaction ends.

        Returns ``True`` only when the count exists and is not finalized.
        Writers of one count serialize on this claim.
        """
        ...

    def mark_finalized(self, count: Count) -> bool:
        """Persist the finalized state of ``count`` unless it was finalized before.

        Returns ``False`` when another writer already finalized the count; the
        stored result is left untouched in that case.
        """
        ...

    def list_all(self) -> Sequence[Count]: ...
