"""Persistence states an entity can be in with respect to a unit of work."""

from enum import Enum


class EntityState(str, Enum):
    """Entity persistence state."""

    UNCHANGED = "UNCHANGED"
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    DETACHED = "DETACHED"

    def __str__(self) -> str:
        return self.value

