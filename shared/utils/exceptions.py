"""
Centralized exceptions for the data access layer.

Usage:
    from shared.utils.exceptions import InvalidArgument, EmptyAggregate

    raise InvalidArgument("page_size must be greater than zero", page_size=0)
    raise EmptyAggregate("max", model="Manufacturer")

Storage failures raised by the driver are never wrapped. StorageFailure is
an alias of SQLAlchemyError so callers can catch them without importing
sqlalchemy directly.
"""

import asyncio
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from shared.config.logging import get_logger

logger = get_logger(__name__)


StorageFailure = SQLAlchemyError


class DataAccessError(Exception):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging of the failure context.
    """

    def __init__(self, detail: str, log_level: str = "warning", **log_context: Any):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, error=type(self).__name__, **log_context)

        self.detail = detail
        self.context = log_context
        super().__init__(detail)


# =============================================================================
# Caller contract violations
# =============================================================================


class InvalidArgument(DataAccessError, ValueError):
    """
    Bad page index/size, missing selector, missing required argument.

    Usage:
        raise InvalidArgument("page_index must not be negative", page_index=-1)
    """


class HierarchyCycleError(InvalidArgument):
    """The parent relation of a flat collection contains a cycle."""

    def __init__(self, node_id: Any, **log_context: Any):
        super().__init__(
            f"Cycle detected in hierarchy at id {node_id!r}",
            node_id=node_id,
            **log_context,
        )


# =============================================================================
# Aggregates
# =============================================================================


class EmptyAggregate(DataAccessError):
    """
    max/min/average over zero matching rows (no identity element exists).

    Usage:
        raise EmptyAggregate("max", model="Manufacturer")
    """

    def __init__(self, function: str, **log_context: Any):
        super().__init__(
            f"Sequence contains no elements for aggregate '{function}'",
            function=function,
            **log_context,
        )


# =============================================================================
# Lifecycle
# =============================================================================


class UnreachableState(DataAccessError, RuntimeError):
    """The audit policy saw a lifecycle phase it cannot stamp."""

    def __init__(self, state: Any, **log_context: Any):
        super().__init__(
            f"Unexpected entity state: {state}",
            log_level="error",
            state=str(state),
            **log_context,
        )


class OperationCancelled(asyncio.CancelledError):
    """
    A suspending operation was cancelled through its cancellation signal.

    Subclasses CancelledError so task cancellation keeps propagating through
    code that only knows about asyncio.
    """

    def __init__(self, operation: str):
        logger.info("Operation cancelled", operation=operation)
        self.operation = operation
        super().__init__(f"Operation '{operation}' was cancelled")
