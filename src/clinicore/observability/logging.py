"""Structured logging for clinicore.

Provides:
- JSON-formatted logs for log aggregation systems
- Correlation ID propagation across requests
- Doctor and appointment ids bound to every line written while handling them
- A readable console format for local development

Usage:
    from clinicore.observability.logging import configure_logging, log_context

    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    with log_context(doctor_id=7):
        logger.info("Cache HIT")  # Includes request_id and doctor_id when set
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

# Context variables for request correlation
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Clinic entities the current request or task is working on
doctor_id_var: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "doctor_id", default=None
)
appointment_id_var: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "appointment_id", default=None
)

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


@contextmanager
def log_context(
    doctor_id: int | None = None, appointment_id: int | None = None
) -> Iterator[None]:
    """Bind clinic ids to every log line written inside the block.

    Ids left as None keep whatever an outer block bound.
    """
    tokens: list[tuple[contextvars.ContextVar[int | None], contextvars.Token[int | None]]] = []
    if doctor_id is not None:
        tokens.append((doctor_id_var, doctor_id_var.set(doctor_id)))
    if appointment_id is not None:
        tokens.append((appointment_id_var, appointment_id_var.set(appointment_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def clinic_ids() -> dict[str, int]:
    """Clinic ids bound in the current context."""
    ids: dict[str, int] = {}
    doctor_id = doctor_id_var.get()
    if doctor_id is not None:
        ids["doctor_id"] = doctor_id
    appointment_id = appointment_id_var.get()
    if appointment_id is not None:
        ids["appointment_id"] = appointment_id
    return ids


class JsonFormatter(logging.Formatter):
    """JSON log formatter with correlation ID support.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "INFO",
        "logger": "clinicore.services.listing",
        "message": "Cache HIT for doctor 7",
        "module": "listing",
        "function": "get_listing",
        "line": 42,
        "request_id": "abc-123",
        "correlation_id": "xyz-789",
        "doctor_id": 7
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        log_data.update(clinic_ids())

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-01-10 12:34:56 | INFO | clinicore.services.listing | Cache HIT | req=abc-123 doctor=7
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()

        fields = []
        request_id = request_id_var.get()
        if request_id:
            fields.append(f"req={request_id[:8]}")
        ids = clinic_ids()
        if "doctor_id" in ids:
            fields.append(f"doctor={ids['doctor_id']}")
        if "appointment_id" in ids:
            fields.append(f"appt={ids['appointment_id']}")
        context = f" | {' '.join(fields)}" if fields else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
