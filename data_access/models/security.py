"""
Security Models: RoleClaim.

Plain entity without audit fields, so deletes remove the row.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .catalog import PrimaryKey


class RoleClaim(Base):
    """Claim granted to every member of a role."""

    __tablename__ = "role_claim"

    id: Mapped[int] = mapped_column(PrimaryKey, primary_key=True)
    role_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    claim_type: Mapped[str] = mapped_column(String(256), nullable=False)
    claim_value: Mapped[Optional[str]] = mapped_column(String(256))

    def __repr__(self) -> str:
        return f"<RoleClaim(id={self.id}, {self.claim_type}={self.claim_value})>"
