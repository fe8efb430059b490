"""JSON logging configuration for the CA tool.

Diagnostics go to stderr as one JSON object per line. Command reports are
printed to stdout by the CLI and never pass through this logger.
"""

import logging
import os

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "ca_tool"
LOG_LEVEL_ENV = "CA_TOOL_LOG_LEVEL"
LOG_FIELDS = frozenset({"timestamp", "level", "logger", "message", "exc_info", "funcName", "lineno"})


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that keeps only LOG_FIELDS.

    ``levelname`` and ``name`` are emitted as ``level`` and ``logger``.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        for source, target in (("levelname", "level"), ("name", "logger")):
            if source in log_record:
                log_record[target] = log_record.pop(source)

        for key in [key for key in log_record if key not in LOG_FIELDS]:
            log_record.pop(key)


def _level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _setup_logger() -> logging.Logger:
    """Initialize and configure singleton logger."""
    logger = logging.getLogger(LOGGER_NAME)

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(levelname)s %(name)s %(funcName)s %(lineno)d %(message)s",
            timestamp=True,
        )
    )

    logger.setLevel(_level_from_env())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
