"""Tests for JSON log formatting and correlation IDs."""

import json
import logging

import pytest

from vidasset.core.logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_error,
    log_info,
    log_warning,
    set_correlation_id,
)


class Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def captured():
    logger = logging.getLogger("vidasset.tests.logging")
    handler = Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    yield logger, handler
    logger.removeHandler(handler)
    clear_correlation_id()


def test_formatter_emits_json_with_extra_fields(captured) -> None:
    logger, handler = captured
    set_correlation_id("req-123")

    log_info(logger, "Finished processing", resolution="720p", file_size=7)

    data = json.loads(StructuredFormatter().format(handler.records[0]))
    assert data["message"] == "Finished processing"
    assert data["level"] == "INFO"
    assert data["correlation_id"] == "req-123"
    assert data["extra"] == {"resolution": "720p", "file_size": 7}


def test_exception_is_included(captured) -> None:
    logger, handler = captured

    try:
        raise OSError("disk full")
    except OSError as e:
        log_error(logger, "Failed to move primary asset", e, old_path="/data/1_clip.mp4")

    data = json.loads(StructuredFormatter().format(handler.records[0]))
    assert data["level"] == "ERROR"
    assert data["exception"]["type"] == "OSError"
    assert data["exception"]["message"] == "disk full"
    assert data["extra"]["old_path"] == "/data/1_clip.mp4"


def test_unserializable_extra_is_stringified(captured) -> None:
    logger, handler = captured

    log_warning(logger, "Progress sink failed", sink=object())

    data = json.loads(StructuredFormatter().format(handler.records[0]))
    assert data["extra"]["sink"].startswith("<object object")


def test_correlation_id_generated_once_per_context() -> None:
    clear_correlation_id()

    first = get_correlation_id()

    assert first
    assert get_correlation_id() == first
    clear_correlation_id()


def test_filter_sets_correlation_id() -> None:
    set_correlation_id("job-9")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "job-9"
    clear_correlation_id()
