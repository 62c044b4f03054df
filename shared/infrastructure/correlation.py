"""
Correlation IDs for log records.

A correlation ID ties together every log line emitted while one logical
operation (one request, one unit of work) is running.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from shared.config.logging import NO_CORRELATION, get_logger

logger = get_logger(__name__)

# Context variable for the correlation ID (task and thread safe)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of the block.

    Usage:
        with correlation_scope() as cid:
            repo.insert(category)
            uow.commit()
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class CorrelationIdFilter:
    """
    Logging filter that adds correlation_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record) -> bool:
        record.correlation_id = correlation_id_var.get() or NO_CORRELATION
        return True
