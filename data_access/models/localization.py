"""
Localization Models: Language, LocaleStringResource.
"""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from data_access.keys import register_key

from .base import AuditMixin, Base
from .catalog import PrimaryKey


class Language(AuditMixin, Base):
    """
    Storefront language.
    Inherits: is_active, is_deleted, creation/modification stamps from AuditMixin.
    """

    __tablename__ = "language"

    id: Mapped[int] = mapped_column(PrimaryKey, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    language_culture: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    rtl: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    string_resources: Mapped[list["LocaleStringResource"]] = relationship(
        back_populates="language"
    )


class LocaleStringResource(AuditMixin, Base):
    """
    Localized string for one language.
    Inherits: is_active, is_deleted, creation/modification stamps from AuditMixin.
    """

    __tablename__ = "locale_string_resource"

    id: Mapped[int] = mapped_column(PrimaryKey, primary_key=True)
    language_id: Mapped[int] = mapped_column(
        PrimaryKey, ForeignKey("language.id"), nullable=False, index=True
    )
    resource_name: Mapped[str] = mapped_column(String(200), nullable=False)
    resource_value: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    language: Mapped["Language"] = relationship(back_populates="string_resources")

    __table_args__ = (
        UniqueConstraint("language_id", "resource_name", name="uq_locale_resource_language_name"),
    )


register_key(Language, "id")
register_key(LocaleStringResource, "id")
