"""Tests for structured logging."""

import json
import logging
import sys

from hallyuhub.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


def make_record(message: str = "hello", exc_info: object = None) -> logging.LogRecord:
    return logging.LogRecord(
        name="hallyuhub.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=(),
        exc_info=exc_info,  # type: ignore[arg-type]
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self) -> None:
        """Test setting and getting correlation ID."""
        result = set_correlation_id("cron-sync-cast-1718000000000-a1b2c")
        assert result == "cron-sync-cast-1718000000000-a1b2c"
        assert get_correlation_id() == "cron-sync-cast-1718000000000-a1b2c"

    def test_set_correlation_id_generates_uuid_when_none(self) -> None:
        """Test that setting None generates a UUID."""
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_adds_correlation_id(self) -> None:
        set_correlation_id("req-1")
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-1"  # type: ignore[attr-defined]


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self) -> None:
        configure_logging(log_level="DEBUG", json_format=False)
        assert logging.getLogger("hallyuhub").getEffectiveLevel() == logging.DEBUG

    def test_configure_logging_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(log_level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_replaces_handlers(self) -> None:
        """Calling it twice leaves exactly one handler on the root logger."""
        configure_logging(log_level="INFO", json_format=True)
        configure_logging(log_level="INFO", json_format=True)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, CustomJsonFormatter)

    def test_configure_logging_text_format(self) -> None:
        configure_logging(log_level="INFO", json_format=False)

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, CompactExceptionFormatter)

    def test_third_party_loggers_quietened(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING


class TestCustomJsonFormatter:
    """Test JSON output."""

    def test_fields(self) -> None:
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = make_record("Merged artist")
        record.correlation_id = "req-42"  # type: ignore[attr-defined]

        data = json.loads(formatter.format(record))

        assert data["message"] == "Merged artist"
        assert data["level"] == "WARNING"
        assert data["logger"] == "hallyuhub.test"
        assert data["line"] == 42
        assert data["correlation_id"] == "req-42"
        assert data["timestamp"]

    def test_no_correlation_id_field_when_empty(self) -> None:
        formatter = CustomJsonFormatter("%(message)s")
        record = make_record()
        record.correlation_id = ""  # type: ignore[attr-defined]

        assert "correlation_id" not in json.loads(formatter.format(record))


class TestCompactExceptionFormatter:
    def test_chain_root_cause_first(self) -> None:
        try:
            try:
                raise ConnectionError("All connection attempts failed")
            except ConnectionError as e:
                raise RuntimeError("Sync failed") from e
        except RuntimeError:
            exc_info = sys.exc_info()

        text = CompactExceptionFormatter().formatException(exc_info)

        lines = text.splitlines()
        assert lines[0] == "╰─► ConnectionError: All connection attempts failed"
        assert "╰─► RuntimeError: Sync failed" in lines

    def test_no_exception(self) -> None:
        assert CompactExceptionFormatter().formatException((None, None, None)) == ""
