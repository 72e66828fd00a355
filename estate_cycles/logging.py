"""Structured logging configuration for estate-cycles.

Engine modules log through ``logging.getLogger(__name__)`` and attach
identifiers with ``extra=log_fields(cycle_id=..., property_id=...)``. The
text format appends those identifiers as ``key=value`` pairs; the JSON format
merges them into the record object.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers capped at WARNING
QUIET_LOGGERS = ("confluent_kafka", "faker")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra", None) or {}


class ContextFormatter(logging.Formatter):
    """Standard line format followed by the record's domain identifiers."""

    def __init__(self) -> None:
        super().__init__(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{line} | {pairs}"


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        log_data.update(_context(record))

        # Decimal amounts and dates fall back to str
        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for estate-cycles.

    Replaces any handlers on the root logger with a single stdout handler.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Unknown names
        fall back to INFO.
    format_type : str
        Format type: "standard" or "json".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter: logging.Formatter = JsonFormatter() if format_type == "json" else ContextFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logging.getLogger("estate_cycles").setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (usually ``__name__``)."""
    return logging.getLogger(name)


def log_fields(**fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping read by both formatters.

    ``None`` values are dropped.

    Examples
    --------
    >>> logger.info("Cycle created", extra=log_fields(cycle_id="sell-1"))
    """
    return {"extra": {key: value for key, value in fields.items() if value is not None}}
