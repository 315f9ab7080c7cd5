"""structlog setup tests."""

from __future__ import annotations

import io
import json

import structlog

from request_utils.logging_config import _rename_logger_to_module, setup_logging


def test_json_output_fields():
    """JSON logs carry timestamp, level, module and event."""
    stream = io.StringIO()
    setup_logging(log_level="debug", json_format=True, stream=stream)
    structlog.get_logger("request_utils.test").info("test_event")

    log = json.loads(stream.getvalue().strip())
    assert log["event"] == "test_event"
    assert log["level"] == "info"
    assert log["module"] == "request_utils.test"
    assert "logger" not in log
    assert "timestamp" in log


def test_contextvars_merged():
    """request_id bound via contextvars appears in log output."""
    stream = io.StringIO()
    setup_logging(log_level="debug", json_format=True, stream=stream)
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id="req-abc123")
    structlog.get_logger("request_utils.test").info("with_request_id")
    structlog.contextvars.clear_contextvars()

    log = json.loads(stream.getvalue().strip())
    assert log["request_id"] == "req-abc123"


def test_level_filtering():
    """Messages below the configured level are dropped."""
    stream = io.StringIO()
    setup_logging(log_level="warning", json_format=True, stream=stream)
    structlog.get_logger("request_utils.test").debug("hidden")
    assert stream.getvalue() == ""


def test_defaults_from_settings(monkeypatch):
    """Unset arguments come from REQUEST_UTILS_* settings."""
    monkeypatch.setenv("REQUEST_UTILS_LOG_JSON", "true")
    monkeypatch.setenv("REQUEST_UTILS_LOG_LEVEL", "info")
    stream = io.StringIO()
    setup_logging(stream=stream)
    structlog.get_logger("request_utils.test").info("from_settings")
    assert json.loads(stream.getvalue().strip())["event"] == "from_settings"


def test_console_format():
    stream = io.StringIO()
    setup_logging(log_level="debug", json_format=False, stream=stream)
    structlog.get_logger("request_utils.test").info("console_event")
    assert "console_event" in stream.getvalue()


def test_rename_logger_to_module():
    assert _rename_logger_to_module(None, "info", {"logger": "x", "event": "e"}) == {"module": "x", "event": "e"}
    assert _rename_logger_to_module(None, "info", {"event": "e"}) == {"event": "e"}
