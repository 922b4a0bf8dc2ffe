"""
Structured logging with JSON output and correlation ID support.

Settlement code logs semantic events (resolved, not_final, stat_unavailable,
completed, needs_review, error) through ``log_event`` so they can be filtered
by the ``event`` key in aggregated logs.
"""
import logging
import json
import sys
from datetime import datetime
from typing import Any
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "asctime", "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter.

    Emits timestamp, level, logger, message and correlation_id. A settlement
    ``event`` supplied via ``extra`` is promoted to the top level; every other
    extra lands under ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extras = {
            k: v for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS
        }
        event = extras.pop("event", None)
        if event:
            log_data["event"] = event
        if extras:
            log_data["extra"] = extras

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable colored console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level_color = self.COLORS.get(record.levelname, "")
        base_msg = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        event = getattr(record, "event", None)
        if event:
            base_msg += f" | event={event}"

        correlation_id = get_correlation_id()
        if correlation_id:
            base_msg += f" | correlation_id={correlation_id}"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Logging level name
        json_output: Use JSONFormatter when True, ColoredFormatter otherwise
        handler: Optional custom handler (defaults to a stdout StreamHandler)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically called with __name__)."""
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    message: str,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """
    Log a settlement event with structured fields.

    Example:
        log_event(logger, logging.INFO, "completed", "Prediction settled",
                  prediction_id=p.id, result="correct")
    """
    logger.log(level, message, exc_info=exc_info, extra={"event": event, **fields})


def set_correlation_id(correlation_id: str) -> Any:
    """Set the correlation ID; returns a token for ``clear_correlation_id``."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID (empty string if unset)."""
    return correlation_id_var.get()


def clear_correlation_id(token: Any) -> None:
    """Reset the correlation ID using the token from ``set_correlation_id``."""
    correlation_id_var.reset(token)
