"""JSON structured logging for the indexing service.

Every record is emitted as one JSON object on stdout. Structured context is
passed through ``extra=`` (``resource_uri``, ``event_key``, ``status_code``...)
and the correlation ID of the event in flight is attached automatically.
Uses python-json-logger for JSON formatting.
"""

import logging
import sys
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from packages.common.config import get_config

# Loggers that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class CorrelationIdFilter(logging.Filter):
    """Logging filter that tags records with the current correlation ID.

    The worker binds the stream message id as correlation ID, so every record
    emitted while an event is in flight can be traced back to its message.
    Records logged outside an event are left untouched.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach the bound correlation ID, if any, to the record.

        Args:
            record: The log record to modify.

        Returns:
            bool: Always True (doesn't filter out records).
        """
        # Import here to avoid circular dependency
        from packages.common.tracing import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id is not None:
            record.correlation_id = correlation_id
        return True


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter adding source location and a stable level field.

    Example output:
        {"message": "Deleting Solr object", "resource_uri": "http://repo/obj2",
         "timestamp": 1700000000.0, "level": "INFO", "logger": "packages.clients.solr_client",
         "correlation_id": "1700000000000-0", ...}
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """Add location fields to the JSON log record.

        Args:
            log_record: The dictionary that will be serialized to JSON.
            record: The original logging.LogRecord.
            message_dict: Dictionary from the log message.
        """
        super().add_fields(log_record, record, message_dict)

        log_record.update(
            timestamp=record.created,
            level=record.levelname,
            logger=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        )


def setup_logging(level: str | None = None) -> None:
    """Configure JSON structured logging for the worker and CLI.

    Replaces any handlers on the root logger with a single stdout handler using
    ``CustomJsonFormatter`` and ``CorrelationIdFilter``, and quiets per-request
    HTTP client logging.

    Args:
        level: Optional log level override (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If not provided, uses LOG_LEVEL from config.

    Example:
        >>> setup_logging("DEBUG")
        >>> logging.getLogger(__name__).info("Queued reindex", extra={"resource_uri": uri})
    """
    log_level = (level or get_config().log_level).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        CustomJsonFormatter("%(timestamp)s %(level)s %(module)s %(function)s %(message)s")
    )
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers[:] = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# Export public API
__all__ = ["CorrelationIdFilter", "CustomJsonFormatter", "setup_logging"]
