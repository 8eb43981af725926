"""
Unit tests for JSON logging, metrics and the error catalog.
"""

import json
import logging
import sys

import pytest

from errors.codes import ErrorCode, get_category
from errors.exceptions import (
    CacheException,
    backend_not_connected,
    backend_write_failed,
    record_decode_error,
)
from telemetry.service import (
    JSONFormatter,
    TelemetryService,
    get_telemetry_service,
    initialize_telemetry,
    session_id_var,
)


def make_record(message="hello", extra_data=None, exc_info=None):
    record = logging.LogRecord(
        name="session.scheduler",
        level=logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=exc_info,
    )
    if extra_data is not None:
        record.extra_data = extra_data
    return record


class TestJSONFormatter:
    """Tests for structured log output."""

    def test_base_fields(self):
        output = json.loads(JSONFormatter().format(make_record()))

        assert output["message"] == "hello"
        assert output["level"] == "ERROR"
        assert output["logger"] == "session.scheduler"
        assert output["timestamp"].endswith("Z")
        assert "session_id" not in output

    def test_extra_data_merged(self):
        output = json.loads(JSONFormatter().format(
            make_record(extra_data={"backend": "redis", "remaining_ttl_ms": 10})
        ))

        assert output["backend"] == "redis"
        assert output["remaining_ttl_ms"] == 10

    def test_session_id_from_context(self):
        token = session_id_var.set("abc")
        try:
            output = json.loads(JSONFormatter().format(make_record()))
        finally:
            session_id_var.reset(token)

        assert output["session_id"] == "abc"

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record(exc_info=sys.exc_info())

        output = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad" in output["exception"]


class TestTelemetryService:
    """Tests for logging setup and metrics."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_configures_root_logger_with_json(self):
        class FakeSettings:
            log_level = "WARNING"

        TelemetryService(FakeSettings())

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_record_metric_logs_debug_entry(self, caplog):
        service = TelemetryService()
        # TelemetryService replaces root handlers, including the capture handler
        logging.getLogger().addHandler(caplog.handler)

        with caplog.at_level(logging.DEBUG, logger="telemetry"):
            service.record_metric("sessions.expired", 3, tags={"backend": "redis"})

        record = next(r for r in caplog.records if r.getMessage() == "Metric: sessions.expired=3")
        assert record.extra_data == {
            "metric_name": "sessions.expired",
            "metric_value": 3,
            "tags": {"backend": "redis"},
        }

    def test_initialize_telemetry_sets_global_service(self, monkeypatch):
        monkeypatch.setattr("telemetry.service._telemetry_service", None)
        assert get_telemetry_service() is None

        service = initialize_telemetry()

        assert get_telemetry_service() is service


class TestErrors:
    """Tests for the error catalog and exception helpers."""

    def test_every_code_has_a_category(self):
        for code in ErrorCode:
            assert get_category(code) in {"decode", "backend"}

    def test_to_dict(self):
        exc = backend_write_failed(details={"backend": "sqlite"})

        assert exc.to_dict() == {
            "error_code": "BACKEND_WRITE_FAILED",
            "category": "backend",
            "message": "Could not persist session",
            "details": {"backend": "sqlite"},
        }

    def test_to_dict_without_details(self):
        assert "details" not in record_decode_error("bad blob").to_dict()

    def test_backend_not_connected_names_backend(self):
        exc = backend_not_connected("redis", {"url": "redis://x"})

        assert isinstance(exc, CacheException)
        assert str(exc) == "redis backend not connected. Call connect() first."
        assert exc.details == {"backend": "redis", "url": "redis://x"}
