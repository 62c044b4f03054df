"""
Global query filters.

A filter is registered against a model (or a mixin) and applies to every
read of that model unless the caller passes ignore_filters=True. The
default registration hides logically deleted rows of every AuditMixin model.

Usage:
    register_query_filter(Manufacturer, lambda cls: cls.rating >= 0)
    criteria = query_filters_for(Manufacturer)
    options = loader_criteria()
"""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy import ColumnElement
from sqlalchemy.orm import with_loader_criteria

from data_access.models.base import AuditMixin
from shared.config.settings import settings

CriterionFactory = Callable[[Any], ColumnElement[bool]]

_FILTERS: dict[type, list[CriterionFactory]] = {}


def register_query_filter(target: type, factory: CriterionFactory) -> None:
    """Register a criterion factory, called with the model class at query time."""
    _FILTERS.setdefault(target, []).append(factory)


def clear_query_filters(target: type) -> None:
    _FILTERS.pop(target, None)


def _factories_for(model: type) -> list[tuple[type, CriterionFactory]]:
    return [
        (target, factory)
        for target, factories in _FILTERS.items()
        if issubclass(model, target)
        for factory in factories
    ]


def query_filters_for(model: type) -> list[ColumnElement[bool]]:
    """WHERE criteria for the root entity of a query."""
    return [factory(model) for _, factory in _factories_for(model)]


def loader_criteria() -> list[Any]:
    """
    Loader options that apply the registered filters to related entities
    brought in through eager loading.
    """
    return [
        with_loader_criteria(target, factory, include_aliases=True)
        for target, factories in _FILTERS.items()
        for factory in factories
    ]


def _not_deleted(cls: Any) -> ColumnElement[bool]:
    return cls.is_deleted.is_(False)


if settings.soft_delete_filter_enabled:
    register_query_filter(AuditMixin, _not_deleted)
