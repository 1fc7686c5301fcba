"""Port for reporting best-effort failures."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class FailureSink(Protocol):
    """Receives failures that must not reach the caller (e.g. history writes)."""

    def report(self, operation: str, error: BaseException, **context: object) -> None: ...


__all__ = ["FailureSink"]
