"""
Generic data access layer for the commerce application.

STRUCTURE:
- models: Declarative base, AuditMixin and the sample entities
- repositories: Repository (blocking) and AsyncRepository (asyncio)
- unit_of_work: UnitOfWork / AsyncUnitOfWork, entity states, audit hook
- audit: Pure audit field policy
- paging: PagedResult and paginate()
- collections: Hierarchy builder, full outer joins
- filters / keys: Global query filters and primary key registry
- services: Language and localization lookups

IMPORT EXAMPLES:
    from data_access import Repository, UnitOfWork, DataContext
    from data_access.collections import as_hierarchy, flatten
"""

from .context import DataContext, SYSTEM_CONTEXT
from .paging import PagedResult
from .repositories import AsyncRepository, Repository
from .states import EntityState
from .unit_of_work import AsyncUnitOfWork, UnitOfWork

__all__ = [
    "AsyncRepository",
    "AsyncUnitOfWork",
    "DataContext",
    "EntityState",
    "PagedResult",
    "Repository",
    "SYSTEM_CONTEXT",
    "UnitOfWork",
]
