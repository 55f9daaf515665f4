"""Tests for structured logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

from tradeproxy.app.core.config import Settings
from tradeproxy.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
    request_id_var,
    setup_logging,
)


def _record(msg: str = "Test message", **attrs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSON formatter for structured logging."""

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_context_fields(self):
        record = _record(
            "Served stale entry",
            request_id="req-1",
            route_class="stats:poe1",
            cache_key="stats:poe1",
            cache_status="STALE",
            upstream_status=403,
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["request_id"] == "req-1"
        assert data["route_class"] == "stats:poe1"
        assert data["cache_key"] == "stats:poe1"
        assert data["cache_status"] == "STALE"
        assert data["upstream_status"] == 403

    def test_none_context_fields_omitted(self):
        data = json.loads(JSONFormatter().format(_record(cache_status=None)))
        assert "cache_status" not in data

    def test_unknown_attributes_go_to_extra(self):
        data = json.loads(JSONFormatter().format(_record(league="Standard")))
        assert data["extra"] == {"league": "Standard"}

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "exception" in data
        assert "ValueError: boom" in "".join(data["exception"])


class TestContextFilter:
    """Test the filter that fills in context defaults."""

    def test_adds_defaults(self):
        record = _record()

        assert ContextFilter().filter(record) is True
        assert record.request_id is None
        assert record.route_class is None
        assert record.cache_status is None

    def test_request_id_from_context_var(self):
        token = request_id_var.set("req-ctx")
        try:
            record = _record()
            ContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "req-ctx"

    def test_explicit_values_kept(self):
        record = _record(request_id="explicit", route_class="search")
        token = request_id_var.set("req-ctx")
        try:
            ContextFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "explicit"
        assert record.route_class == "search"


class TestLogContext:
    """Test get_log_context helper."""

    def test_drops_none_values(self):
        assert get_log_context(cache_key="stats:poe1") == {"cache_key": "stats:poe1"}

    def test_extra_fields(self):
        context = get_log_context(route_class="fetch", wait_ms=120)
        assert context == {"route_class": "fetch", "wait_ms": 120}


class TestLoggingConfig:
    """Test logging config generation."""

    def test_text_format(self):
        with patch("tradeproxy.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "text"
            mock_settings.log_level = "info"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "standard"
        assert config["handlers"]["console"]["level"] == "INFO"
        assert "json" not in config["formatters"]

    def test_json_format(self):
        with patch("tradeproxy.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "JSON"
            mock_settings.log_level = "DEBUG"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["formatters"]["json"]["()"].endswith("JSONFormatter")
        assert "tradeproxy" in config["loggers"]

    def test_structured_format(self):
        with patch("tradeproxy.app.core.logging.settings") as mock_settings:
            mock_settings.log_format = "structured"
            mock_settings.log_level = "WARNING"
            config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"

    def test_get_logger_default_name(self):
        assert get_logger().name == "tradeproxy"

    def test_explicit_settings_override_global(self):
        config = get_logging_config(
            Settings(_env_file=None, log_format="json", log_level="error")
        )

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["tradeproxy"]["level"] == "ERROR"

    def test_setup_logging_applies_settings(self):
        setup_logging(Settings(_env_file=None, log_level="WARNING"))

        assert logging.getLogger("tradeproxy").level == logging.WARNING
        setup_logging(Settings(_env_file=None, log_level="INFO"))
