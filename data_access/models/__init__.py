"""
SQLAlchemy ORM Models Package.

Models are organized into domain-specific modules:
- base: Base class and AuditMixin
- catalog: Category, Manufacturer
- localization: Language, LocaleStringResource
- security: RoleClaim (plain, physically deleted)
"""

# Base classes
from .base import Base, AuditMixin, is_auditable

# Catalog
from .catalog import Category, Manufacturer

# Localization
from .localization import Language, LocaleStringResource

# Security
from .security import RoleClaim

__all__ = [
    "Base",
    "AuditMixin",
    "is_auditable",
    "Category",
    "Manufacturer",
    "Language",
    "LocaleStringResource",
    "RoleClaim",
]
