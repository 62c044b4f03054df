"""
Base class and AuditMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing soft delete and audit trail fields.

    Fields added:
    - is_active / is_deleted: lifecycle flags (is_deleted implies not is_active)
    - creation_date: set once, at insert
    - last_modified_date: set on every insert and update
    - creator_id / modifier_id: acting principal

    The fields are written by data_access.audit when the unit of work
    flushes; application code should not set them.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    creation_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_modified_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Cannot use FK to the identity store, it lives outside this layer
    creator_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    modifier_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        status = "deleted" if self.is_deleted else "active" if self.is_active else "inactive"
        return f"<{class_name}(id={id_val}, {status})>"


def is_auditable(entity_or_model: object) -> bool:
    """True for AuditMixin models and their instances."""
    cls = entity_or_model if isinstance(entity_or_model, type) else type(entity_or_model)
    return issubclass(cls, AuditMixin)
