"""
Structured logging tests.
"""

import io
import json
import logging

import pytest

from assetledger.observability import (
    LogEvent,
    StructuredHandler,
    configure_logging,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    reset_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def captured():
    stream = io.StringIO()
    root = configure_logging("debug", "json", stream)
    yield stream
    for handler in list(root.handlers):
        if getattr(handler, "_assetledger", False):
            root.removeHandler(handler)


def _lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestStructuredOutput:

    def test_one_json_object_per_line(self, captured):
        log = get_logger("test")
        log.info("first", operation="CreateAsset", asset_id="a1")
        log.debug("second")
        first, second = _lines(captured)
        assert first["message"] == "first"
        assert first["level"] == "info"
        assert first["logger"] == "assetledger.test"
        assert first["operation"] == "CreateAsset"
        assert first["context"] == {"asset_id": "a1"}
        assert second["level"] == "debug"
        assert "context" not in second
        assert "operation" not in second

    def test_operation_records(self, captured):
        log = get_logger("test")
        log.operation("ReadAsset", 1.23456, success=False, error_code="ASSET_NOT_FOUND", tx_id="t1")
        (event,) = _lines(captured)
        assert event["message"] == "Operation ReadAsset failed"
        assert event["level"] == "warning"
        assert event["duration_ms"] == 1.235
        assert event["error_code"] == "ASSET_NOT_FOUND"
        assert event["context"] == {"tx_id": "t1"}

    def test_exception_included(self, captured):
        log = get_logger("test")
        try:
            raise KeyError("k")
        except KeyError:
            log.error("lookup failed", error_code="X", exc_info=True)
        (event,) = _lines(captured)
        assert "KeyError" in event["exception"]

    def test_level_filtering(self, captured):
        configure_logging("warning", "json", captured)
        log = get_logger("test")
        log.info("dropped")
        log.warning("kept")
        assert [e["message"] for e in _lines(captured)] == ["kept"]

    def test_reconfigure_replaces_handler(self, captured):
        root = configure_logging("info", "json", captured)
        configure_logging("info", "json", captured)
        assert sum(1 for h in root.handlers if getattr(h, "_assetledger", False)) == 1

    def test_text_format(self, captured):
        configure_logging("info", "text", captured)
        get_logger("test").info("plain message")
        assert "INFO assetledger.test: plain message" in captured.getvalue()

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="unknown log level"):
            configure_logging("loud")

    def test_handler_usable_standalone(self):
        stream = io.StringIO()
        logger = logging.getLogger("assetledger-standalone-test")
        logger.propagate = False
        handler = StructuredHandler(stream)
        logger.addHandler(handler)
        try:
            logger.warning("hello %s", "world")
        finally:
            logger.removeHandler(handler)
        assert json.loads(stream.getvalue())["message"] == "hello world"


class TestCorrelationIds:

    def test_records_carry_current_id(self, captured):
        token = set_correlation_id("corr-fixed")
        try:
            get_logger("test").info("inside")
        finally:
            reset_correlation_id(token)
        get_logger("test").info("outside")
        inside, outside = _lines(captured)
        assert inside["correlation_id"] == "corr-fixed"
        assert "correlation_id" not in outside

    def test_generate(self):
        cid = generate_correlation_id()
        assert cid.startswith("corr-")
        assert len(cid) == len("corr-") + 12
        assert cid != generate_correlation_id()

    def test_get_creates_when_unset(self):
        token = set_correlation_id("")
        try:
            cid = get_correlation_id()
            assert cid.startswith("corr-")
            assert get_correlation_id() == cid
        finally:
            reset_correlation_id(token)


class TestLogEvent:

    def test_empty_values_dropped(self):
        event = LogEvent(timestamp="t", level="info", logger="l", message="m")
        assert event.to_dict() == {"timestamp": "t", "level": "info", "logger": "l", "message": "m"}
