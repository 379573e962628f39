"""Tests for log redaction and formatting."""

import json
import logging

import pytest

from lightning_tracker.core.logging import (
    REDACTED,
    ContextFilter,
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture(autouse=True)
def reset_request_id():
    clear_request_id()
    yield
    clear_request_id()


class TestRedact:
    def test_weather_api_key_in_query_string(self):
        url = "https://api.openweathermap.org/data/2.5/weather?lat=1&lon=2&appid=abc123&units=metric"

        assert redact(url) == (
            f"https://api.openweathermap.org/data/2.5/weather?lat=1&lon=2&appid={REDACTED}&units=metric"
        )

    def test_password_in_connection_string(self):
        redacted = redact("Connecting to postgresql+asyncpg://tracker:hunter2@db:5432/tracker")

        assert "hunter2" not in redacted
        assert f"postgresql+asyncpg://tracker:{REDACTED}@db:5432/tracker" in redacted

    def test_sensitive_dict_keys(self):
        assert redact({"Password": "x", "nested": {"token": "y"}, "items": ["appid=z"], "count": 3}) == {
            "Password": REDACTED,
            "nested": {"token": REDACTED},
            "items": [f"appid={REDACTED}"],
            "count": 3,
        }

    def test_plain_text_is_untouched(self):
        assert redact("Location recorded for session_1") == "Location recorded for session_1"
        assert redact(None) is None


class TestFilters:
    def test_sensitive_data_filter_masks_args(self):
        record = logging.makeLogRecord(
            {"msg": "Weather request %s", "args": ("https://x.test/?appid=abc123",)}
        )

        assert SensitiveDataFilter().filter(record) is True
        assert "abc123" not in record.getMessage()

    def test_context_filter_adds_request_id(self):
        record = logging.makeLogRecord({"msg": "hello"})
        ContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.event_type == "general"

        set_request_id("socket-1")
        record = logging.makeLogRecord({"msg": "hello", "event_type": "feature_used"})
        ContextFilter().filter(record)
        assert record.request_id == "socket-1"
        assert record.event_type == "feature_used"


class TestJsonFormatter:
    def test_extras_are_included(self):
        record = logging.makeLogRecord(
            {"name": "lightning_tracker", "levelname": "INFO", "msg": "Channel closed", "total_connections": 2}
        )
        ContextFilter().filter(record)

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "Channel closed"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "-"
        assert payload["event_type"] == "general"
        assert payload["total_connections"] == 2
        assert "exception" not in payload

    def test_exception_traceback(self):
        try:
            raise ConnectionRefusedError("database went away")
        except ConnectionRefusedError as e:
            record = logging.makeLogRecord({"msg": "Store failed", "exc_info": (type(e), e, e.__traceback__)})

        payload = json.loads(JsonFormatter().format(record))

        assert "ConnectionRefusedError: database went away" in payload["exception"]
        assert "exc_info" not in payload
