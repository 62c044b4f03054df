"""
Language lookups for the storefront.

Usage:
    with UnitOfWork(db) as uow:
        service = LanguageService(Repository(Language, uow))
        spanish = service.get_language_by_culture(" ES-ar ")
"""

from __future__ import annotations

from sqlalchemy import func

from data_access.models import Language
from data_access.repositories import Repository
from shared.config.logging import get_logger
from shared.utils.exceptions import InvalidArgument

logger = get_logger(__name__)


def normalize_culture(culture: str) -> str:
    """Trimmed, lower-cased culture name ("es-AR " -> "es-ar")."""
    if culture is None:
        raise InvalidArgument("culture is required")
    return culture.strip().lower()


class LanguageService:
    """Read-only access to the configured storefront languages."""

    def __init__(self, repository: Repository[Language]):
        self._repo = repository

    def get_languages(self) -> list[Language]:
        return self._repo.get_all(order_by=[Language.display_order, Language.id])

    def get_language_by_culture(self, culture: str) -> Language | None:
        """Language whose culture matches, ignoring case and surrounding spaces."""
        wanted = normalize_culture(culture)
        language = self._repo.first_or_default(
            func.lower(func.trim(Language.language_culture)) == wanted,
            order_by=Language.id,
        )
        if language is None:
            logger.debug("Unknown culture requested", culture=wanted)
        return language

    def get_cultures(self) -> list[str]:
        """Culture names of every language, in display order."""
        return [language.language_culture for language in self.get_languages()]
