"""
Structured JSON Logging

One JSON object per record when LOG_JSON=true, plain text otherwise.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from oncodose.config import LOG_JSON, LOG_LEVEL

# Attributes every LogRecord carries; anything else was passed via `extra=`
_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


class StructuredJSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Log format:
    {
        "ts": "2024-01-01T00:00:00Z",
        "level": "INFO",
        "logger": "oncodose.routers.dosing",
        "message": "...",
        "req_id": "uuid",
        "route": "/api/dosing/calculate",
        "method": "POST",
        "status": 200,
        "latency_ms": 3.2
    }
    """

    def __init__(self, *args, json_output: bool = LOG_JSON, **kwargs):
        super().__init__(*args, **kwargs)
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        if not self.json_output:
            return super().format(record)

        log_data = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["error"] = self.formatException(record.exc_info)

        # Request context and any other `extra=` fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_structured_logging(level: str = LOG_LEVEL, json_output: bool = LOG_JSON):
    """Setup structured logging on the root logger."""
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJSONFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        json_output=json_output,
    ))
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
