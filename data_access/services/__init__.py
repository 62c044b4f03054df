"""
Thin application services over the generic repository.
"""

from .language_service import LanguageService, normalize_culture
from .localization_service import LocalizationService

__all__ = ["LanguageService", "LocalizationService", "normalize_culture"]
