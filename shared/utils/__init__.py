"""
Utilities: exceptions shared by every data access module.
"""

from shared.utils.exceptions import (
    DataAccessError,
    InvalidArgument,
    HierarchyCycleError,
    EmptyAggregate,
    UnreachableState,
    OperationCancelled,
    StorageFailure,
)

__all__ = [
    "DataAccessError",
    "InvalidArgument",
    "HierarchyCycleError",
    "EmptyAggregate",
    "UnreachableState",
    "OperationCancelled",
    "StorageFailure",
]
