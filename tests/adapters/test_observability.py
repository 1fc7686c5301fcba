from __future__ import annotations

import logging

import pytest

from stocktake.adapters.observability import LoggingFailureSink
from stocktake.domain.errors import StorageUnavailable


def test_logging_failure_sink_logs_and_counts(caplog: pytest.LogCaptureFixture) -> None:
    sink = LoggingFailureSink()
    error = StorageUnavailable("history store offline")

    with caplog.at_level(logging.WARNING, logger="stocktake.adapters.observability"):
        sink.report("history.record", error, count_id="R-1", code="A")
        sink.report("history.record", error, count_id="R-1", code="B")

    assert sink.failures("history.record") == 2
    assert sink.failures("other") == 0
    assert len(caplog.records) == 2
    record = caplog.records[0]
    assert record.levelno == logging.WARNING
    assert "code=A, count_id=R-1" in record.getMessage()
    assert record.exc_info is not None
