"""
Tests for structured logging configuration and JSON formatter.
"""
import json
import logging
import sys

from portal.core.logging_config import (
    JSONFormatter,
    build_logging_config,
    request_id_context,
)


def _record(level=logging.INFO, msg="Test message", exc_info=None, **extra):
    record = logging.LogRecord(
        name="portal.core.session_workflow",
        level=level,
        pathname="session_workflow.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_log_entry(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "portal.core.session_workflow"
        assert entry["message"] == "Test message"
        assert "timestamp" in entry
        assert "request_id" not in entry

    def test_request_id_from_context(self):
        token = request_id_context.set("req-123")
        try:
            entry = json.loads(JSONFormatter().format(_record()))
        finally:
            request_id_context.reset(token)

        assert entry["request_id"] == "req-123"

    def test_session_fields_from_extra(self):
        record = _record(session_id="s-1", submission_id=7, error_code="NOT_FOUND")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["session_id"] == "s-1"
        assert entry["submission_id"] == 7
        assert entry["error_code"] == "NOT_FOUND"

    def test_unknown_extra_fields_are_dropped(self):
        entry = json.loads(JSONFormatter().format(_record(email="a@x.com")))

        assert "email" not in entry

    def test_source_location_only_for_errors(self):
        info = json.loads(JSONFormatter().format(_record()))
        error = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))

        assert "source" not in info
        assert error["source"] == "session_workflow.py:42"

    def test_exception_info_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in entry["exception"]


class TestBuildLoggingConfig:
    def test_json_handler_in_production(self):
        config = build_logging_config(logging.INFO, use_json=True)

        assert config["handlers"]["console"]["formatter"] == "json"

    def test_plain_handler_in_development(self):
        config = build_logging_config(logging.DEBUG, use_json=False)

        assert config["handlers"]["console"]["formatter"] == "default"
        assert config["loggers"]["portal"]["level"] == logging.DEBUG

    def test_noisy_libraries_quieted(self):
        config = build_logging_config(logging.DEBUG, use_json=False)

        assert config["loggers"]["sqlalchemy.engine"]["level"] == logging.WARNING
        assert config["loggers"]["httpx"]["level"] == logging.WARNING


class TestRequestIdContext:
    def test_default_is_none(self):
        assert request_id_context.get() is None
