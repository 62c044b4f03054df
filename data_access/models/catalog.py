"""
Catalog Models: Category, Manufacturer.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from data_access.keys import register_key

from .base import AuditMixin, Base

# SQLite only auto-increments INTEGER PRIMARY KEY columns
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


class Category(AuditMixin, Base):
    """
    Product category. Categories nest through parent_category_id.
    Inherits: is_active, is_deleted, creation/modification stamps from AuditMixin.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(PrimaryKey, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    alias: Mapped[Optional[str]] = mapped_column(String(200))
    meta_keywords: Mapped[Optional[str]] = mapped_column(Text)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    parent_category_id: Mapped[Optional[int]] = mapped_column(
        PrimaryKey, ForeignKey("category.id"), nullable=True, index=True
    )

    # Relationships
    parent_category: Mapped[Optional["Category"]] = relationship(
        back_populates="categories", remote_side="Category.id"
    )
    categories: Mapped[list["Category"]] = relationship(back_populates="parent_category")


class Manufacturer(AuditMixin, Base):
    """
    Product manufacturer.
    Inherits: is_active, is_deleted, creation/modification stamps from AuditMixin.
    """

    __tablename__ = "manufacturer"

    id: Mapped[int] = mapped_column(PrimaryKey, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    alias: Mapped[Optional[str]] = mapped_column(String(200))
    rating: Mapped[int] = mapped_column(Integer, default=0)


register_key(Category, "id")
register_key(Manufacturer, "id")
