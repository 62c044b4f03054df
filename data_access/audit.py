"""
Audit policy for auditable entities.

audit_fields() is a pure function of (state, actor, now) to the field values
the store must see. apply_audit() writes them onto an entity and returns the
state to persist: a logical delete is persisted as a modification.

    ADDED     -> is_active=True, is_deleted=False, creator_id, creation_date, then MODIFIED stamps
    MODIFIED  -> modifier_id, last_modified_date
    DELETED   -> is_active=False, is_deleted=True, then MODIFIED stamps
    UNCHANGED -> nothing
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from data_access.models.base import AuditMixin
from data_access.states import EntityState
from shared.config.constants import AuditFields
from shared.utils.exceptions import UnreachableState


def audit_fields(state: EntityState, actor_id: Optional[int], now: datetime) -> dict[str, Any]:
    """Field mutations for an auditable entity entering the given state."""
    if state is EntityState.UNCHANGED:
        return {}

    modify = {
        AuditFields.MODIFIER_ID: actor_id,
        AuditFields.LAST_MODIFIED_DATE: now,
    }

    if state is EntityState.ADDED:
        return {
            AuditFields.IS_ACTIVE: True,
            AuditFields.IS_DELETED: False,
            AuditFields.CREATOR_ID: actor_id,
            AuditFields.CREATION_DATE: now,
            **modify,
        }
    if state is EntityState.MODIFIED:
        return modify
    if state is EntityState.DELETED:
        return {
            AuditFields.IS_ACTIVE: False,
            AuditFields.IS_DELETED: True,
            **modify,
        }

    raise UnreachableState(state)


def apply_audit(
    entity: AuditMixin,
    state: EntityState,
    actor_id: Optional[int],
    now: datetime,
) -> EntityState:
    """
    Stamp an auditable entity and return the state to persist.

    Args:
        entity: The staged entity.
        state: Its state in the unit of work.
        actor_id: Acting principal, taken from the DataContext.
        now: Commit timestamp.

    Returns:
        MODIFIED for a logical delete, otherwise the given state.

    Raises:
        UnreachableState: for DETACHED or any unknown state.
    """
    for name, value in audit_fields(state, actor_id, now).items():
        setattr(entity, name, value)

    if state is EntityState.DELETED:
        return EntityState.MODIFIED
    return state
