"""
Structured JSON logging configuration.

Every log line is a single JSON object on stdout carrying the channel
(http, store, query, import), the current request ID and any business
context attached by the caller.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from student_records.config import LOG_LEVEL

# Request ID of the HTTP request currently being served ("" outside requests)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "store", "query", "import"]


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a LogRecord as one JSON line.

    Keys: timestamp (UTC, millisecond precision), level, message, channel,
    context (always includes request_id) and extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.rsplit(".", 1)[-1]),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = LOG_LEVEL):
    """
    Attach the JSON formatter to the root logger and set channel levels.

    Safe to call more than once; the root handler list is replaced each time.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"student_records.{channel}").setLevel(numeric_level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Return the logger for a channel (http, store, query, import)."""
    return logging.getLogger(f"student_records.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None):
    """
    Emit a log entry with business context (student_id, roll_number, ...)
    and extra metadata (duration_ms, counts, ...).
    """
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.rsplit(".", 1)[-1]
        }
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
