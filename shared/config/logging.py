"""
Structured logging for the data access layer.

Keyword arguments passed to a logger call become the record's structured
data:

    logger.debug("Entity state changed", model="Category", state="DELETED")

Production renders one JSON object per record, development a single
readable line. Both carry the correlation ID stamped by
shared.infrastructure.correlation.CorrelationIdFilter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

NO_CORRELATION = "-"


def _structured_fields(record: logging.LogRecord) -> tuple[str | None, dict[str, Any]]:
    correlation_id = getattr(record, "correlation_id", None)
    if correlation_id == NO_CORRELATION:
        correlation_id = None
    return correlation_id, getattr(record, "extra_data", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id, data = _structured_fields(record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if correlation_id:
            payload["correlation_id"] = correlation_id
        if data:
            payload["data"] = data
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["source"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(payload, default=str)


class DevelopmentFormatter(logging.Formatter):
    """`HH:MM:SS LEVEL [cid] logger: message (key=value, ...)`, colored by level."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        correlation_id, data = _structured_fields(record)
        color = self.COLORS.get(record.levelno, self.RESET)

        parts = [
            datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
            f"{color}{record.levelname:<8}{self.RESET}",
        ]
        if correlation_id:
            parts.append(f"[{correlation_id[:8]}]")
        parts.append(f"{record.name}: {record.getMessage()}")
        if data:
            parts.append("(" + ", ".join(f"{k}={v}" for k, v in data.items()) + ")")

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """Logger whose unknown keyword arguments are collected into `extra_data`."""

    def _log(
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **data: Any,
    ) -> None:
        extra = dict(extra or {})
        extra["extra_data"] = data or None
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Call once at startup."""
    from shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Statements are echoed through settings.sql_echo, the pool stays quiet
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Logger for a module.

    Usage:
        logger = get_logger(__name__)
        logger.info("Creating database engine", url="db:5432/commerce")
        logger.error("Commit failed, rolled back", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_actor_id(actor_id: int | str | None) -> str:
    """
    Mask an actor identifier for logging.

    Shows the first and last characters only, so two log lines can be
    correlated without exposing the full principal identifier.
    """
    if actor_id is None:
        return "<anonymous>"

    value = str(actor_id)
    if len(value) <= 2:
        return "*" * len(value)
    return f"{value[0]}***{value[-1]}"
