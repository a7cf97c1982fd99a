"""Tests for correlation ids and JSON logging."""

import json
import logging
import uuid

from tripdesk.observability.correlation import (
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    resolve_correlation_id,
    set_correlation_id,
)
from tripdesk.observability.logging import JsonFormatter, get_logger


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tripdesk.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelation:
    def test_generate_is_uuid(self):
        uuid.UUID(generate_correlation_id())

    def test_set_and_reset(self):
        token = set_correlation_id("cid-1")
        try:
            assert get_correlation_id() == "cid-1"
        finally:
            reset_correlation_id(token)
        assert get_correlation_id() == ""

    def test_resolve_keeps_well_formed(self):
        assert resolve_correlation_id("abc-123:x") == "abc-123:x"

    def test_resolve_rejects_too_long(self):
        inbound = "a" * 65
        assert resolve_correlation_id(inbound) != inbound

    def test_resolve_generates_for_none(self):
        assert resolve_correlation_id(None)


class TestJsonFormatter:
    def test_basic_fields(self):
        out = json.loads(JsonFormatter().format(_record()))
        assert out["level"] == "INFO"
        assert out["logger"] == "tripdesk.test"
        assert out["message"] == "hello"
        assert "timestamp" in out

    def test_includes_correlation_id(self):
        token = set_correlation_id("cid-log")
        try:
            out = json.loads(JsonFormatter().format(_record()))
        finally:
            reset_correlation_id(token)
        assert out["correlationId"] == "cid-log"

    def test_merges_extra_fields(self):
        record = _record(extra_fields={"booking_id": 42})
        out = json.loads(JsonFormatter().format(record))
        assert out["booking_id"] == 42

    def test_non_json_values_stringified(self):
        from decimal import Decimal

        record = _record(extra_fields={"amount": Decimal("10.50")})
        out = json.loads(JsonFormatter().format(record))
        assert out["amount"] == "10.50"


class TestGetLogger:
    def test_configured_once(self):
        name = f"tripdesk.test.{uuid.uuid4().hex}"
        first = get_logger(name)
        second = get_logger(name)
        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        logger = get_logger(f"tripdesk.test.{uuid.uuid4().hex}")
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        logger = get_logger(f"tripdesk.test.{uuid.uuid4().hex}")
        assert logger.level == logging.INFO
