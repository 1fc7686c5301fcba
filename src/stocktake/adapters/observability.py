"""Logging-backed sink for failures that are not surfaced to callers."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING

log = logging.getLogger(__name__)


class LoggingFailureSink:
    """Log each reported failure and keep a per-operation tally."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or log
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def report(self, operation: str, error: BaseException, **context: object) -> None:
        with self._lock:
            self._counts[operation] += 1
        details = ", ".join(f"{key}={value}" for key, value in sorted(context.items()))
        self._log.warning("%s failed (%s): %s", operation, details, error, exc_info=error)

    def failures(self, operation: str) -> int:
        with self._lock:
            return self._counts[operation]


if TYPE_CHECKING:
    from stocktake.domain.ports import FailureSink

    _sink_check: FailureSink = LoggingFailureSink()
