"""
Generic repositories.

Repository is the blocking flavour, AsyncRepository the asyncio one. Both
share statement composition through BaseRepository.
"""

from .base import BaseRepository, apply_include, apply_order
from .repository import Repository
from .async_repository import AsyncRepository, run_cancellable

__all__ = [
    "BaseRepository",
    "Repository",
    "AsyncRepository",
    "apply_include",
    "apply_order",
    "run_cancellable",
]
