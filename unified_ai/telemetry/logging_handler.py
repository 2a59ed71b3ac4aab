"""
Unified AI - Structured Logging

JSON log formatting with a per-attempt request id carried in a context
variable, plus a telemetry handler that writes lifecycle events to the log.
"""

import contextvars
import json
import logging
from datetime import UTC, datetime

from .handler import ErrorTelemetry, RequestTelemetry, ResponseTelemetry, TelemetryHandler

# Request ID context variable, set by the orchestrator for each attempt
_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)

_RESERVED_ATTRS = frozenset(
    (
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "message",
        "taskName",
    )
)


def get_request_id() -> str | None:
    """Get current request ID from context."""
    return _request_id_ctx.get()


def set_request_id(request_id: str | None) -> contextvars.Token[str | None]:
    """Set request ID in context; returns a token for reset_request_id."""
    return _request_id_ctx.set(request_id)


def reset_request_id(token: contextvars.Token[str | None]) -> None:
    _request_id_ctx.reset(token)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = _request_id_ctx.get()
        if request_id:
            log_data["request_id"] = request_id

        # Extra fields passed through logger.x(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Install a single stream handler on the package logger.

    Safe to call repeatedly; existing handlers are replaced.
    """
    logger = logging.getLogger("unified_ai")
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


class LoggingTelemetryHandler(TelemetryHandler):
    """Writes request lifecycle events to the log."""

    def __init__(self, logger_name: str = "unified_ai.telemetry") -> None:
        self.logger = logging.getLogger(logger_name)

    async def on_request(self, event: RequestTelemetry) -> None:
        self.logger.info(
            f"Request started: {event.provider}.{event.operation}",
            extra={"event": "request_started", **event.to_dict()},
        )

    async def on_response(self, event: ResponseTelemetry) -> None:
        self.logger.info(
            f"Request finished in {event.latency_ms:.1f}ms",
            extra={"event": "request_finished", **event.to_dict()},
        )

    async def on_error(self, event: ErrorTelemetry) -> None:
        self.logger.warning(
            f"Request failed: {event.error}",
            extra={"event": "request_failed", **event.to_dict()},
        )
