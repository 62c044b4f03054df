"""
Infrastructure module: database engines, sessions and log correlation.

Provides:
- Database engines and session factories (db.py)
- Correlation IDs for log records (correlation.py)
"""

from shared.infrastructure.db import (
    get_engine,
    get_async_engine,
    make_session_factory,
    make_async_session_factory,
    get_db_context,
    get_async_db_context,
    safe_commit,
    safe_commit_async,
)
from shared.infrastructure.correlation import (
    correlation_scope,
    get_correlation_id,
    CorrelationIdFilter,
)

__all__ = [
    # db
    "get_engine",
    "get_async_engine",
    "make_session_factory",
    "make_async_session_factory",
    "get_db_context",
    "get_async_db_context",
    "safe_commit",
    "safe_commit_async",
    # correlation
    "correlation_scope",
    "get_correlation_id",
    "CorrelationIdFilter",
]
