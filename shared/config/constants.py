"""
Centralized constants for the data access layer.

Usage:
    from shared.config.constants import Limits, AuditFields

    page_size = Limits.DEFAULT_PAGE_SIZE
"""

from typing import Final

from shared.config.settings import settings


# =============================================================================
# Paging
# =============================================================================


class Limits:
    """Paging defaults."""

    DEFAULT_PAGE_INDEX: Final[int] = 0
    DEFAULT_PAGE_SIZE: Final[int] = settings.default_page_size
    DEFAULT_INDEX_FROM: Final[int] = 0

    # Prefix for positional parameters bound into raw SQL text
    RAW_PARAM_PREFIX: Final[str] = "p"


# =============================================================================
# Audit columns
# =============================================================================


class AuditFields:
    """Attribute names written by the audit policy."""

    CREATION_DATE: Final[str] = "creation_date"
    LAST_MODIFIED_DATE: Final[str] = "last_modified_date"
    CREATOR_ID: Final[str] = "creator_id"
    MODIFIER_ID: Final[str] = "modifier_id"
    IS_ACTIVE: Final[str] = "is_active"
    IS_DELETED: Final[str] = "is_deleted"
