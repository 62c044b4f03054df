"""
Explicit per-operation context.

The acting principal (and the caller's culture, for locale-aware
collaborators) travels with the unit of work instead of being read from
ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DataContext:
    """
    Who is acting, and when "now" is.

    Usage:
        ctx = DataContext(actor_id=user.id, culture="es-AR")
        uow = UnitOfWork(db, ctx)
    """

    actor_id: Optional[int] = None
    culture: Optional[str] = None
    clock: Callable[[], datetime] = field(default=utc_now, repr=False, compare=False)

    def now(self) -> datetime:
        return self.clock()

    def with_actor(self, actor_id: Optional[int]) -> "DataContext":
        """Copy of this context acting as another principal."""
        return DataContext(actor_id=actor_id, culture=self.culture, clock=self.clock)


SYSTEM_CONTEXT = DataContext()
