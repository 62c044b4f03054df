"""
Localized string resources.
"""

from __future__ import annotations

from sqlalchemy import func

from data_access.models import LocaleStringResource
from data_access.repositories import Repository
from shared.utils.exceptions import InvalidArgument


class LocalizationService:
    """Resource lookup by name within one language."""

    def __init__(self, repository: Repository[LocaleStringResource]):
        self._repo = repository

    def get_string_resource(self, resource_key: str, language_id: int) -> LocaleStringResource | None:
        """Resource matching the key (trimmed, case-insensitive) for a language."""
        if resource_key is None:
            raise InvalidArgument("resource_key is required", language_id=language_id)
        return self._repo.first_or_default(
            [
                func.lower(func.trim(LocaleStringResource.resource_name)) == resource_key.strip().lower(),
                LocaleStringResource.language_id == language_id,
            ],
            order_by=LocaleStringResource.id,
        )

    def get_string(self, resource_key: str, language_id: int, default: str | None = None) -> str | None:
        """Resource value, or default (the key itself when not given) when missing."""
        resource = self.get_string_resource(resource_key, language_id)
        if resource is not None:
            return resource.resource_value
        return default if default is not None else resource_key
