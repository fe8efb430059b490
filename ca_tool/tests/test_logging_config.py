"""Tests for the JSON log formatter."""

import json
import logging

from ca_tool.lib.logging_config import LOG_FIELDS, LOGGER, CustomJsonFormatter


class TestCustomJsonFormatter:
    """Tests for CustomJsonFormatter."""

    def test_emits_only_known_fields(self) -> None:
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(name)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
        record = logging.LogRecord(
            name="ca_tool",
            level=logging.WARNING,
            pathname=__file__,
            lineno=10,
            msg="Replacing existing certificate for %s",
            args=("peer1",),
            exc_info=None,
        )
        record.ca_dir = "/tmp/ca"

        payload = json.loads(formatter.format(record))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "ca_tool"
        assert payload["message"] == "Replacing existing certificate for peer1"
        assert "ca_dir" not in payload
        assert set(payload) <= LOG_FIELDS

    def test_logger_writes_to_single_handler(self) -> None:
        assert LOGGER.name == "ca_tool"
        assert len(LOGGER.handlers) == 1
        assert LOGGER.propagate is False
