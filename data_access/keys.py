"""
Primary key accessors registered per model at startup.

Repositories use the registry to build identity stubs (delete by id)
without inspecting the model at runtime. Models without a registration
fall back to fetch-then-delete.

Usage:
    register_key(Category, "id")
    key_of(category)          # (42,)
    key_attributes(Category)  # ("id",)
"""

from __future__ import annotations

from operator import attrgetter
from typing import Any, Callable

_KEY_ATTRIBUTES: dict[type, tuple[str, ...]] = {}
_KEY_GETTERS: dict[type, Callable[[Any], Any]] = {}


def register_key(model: type, *attribute_names: str) -> None:
    """Register the primary key attribute(s) of a model."""
    if not attribute_names:
        raise ValueError(f"{model.__name__}: at least one key attribute is required")
    _KEY_ATTRIBUTES[model] = tuple(attribute_names)
    _KEY_GETTERS[model] = attrgetter(*attribute_names)


def key_attributes(model: type) -> tuple[str, ...] | None:
    """Key attribute names for a model, or None when not registered."""
    return _KEY_ATTRIBUTES.get(model)


def key_of(entity: Any) -> tuple[Any, ...]:
    """Primary key values of an entity, always as a tuple."""
    getter = _KEY_GETTERS.get(type(entity))
    if getter is None:
        raise KeyError(f"No key registered for {type(entity).__name__}")
    value = getter(entity)
    return value if len(_KEY_ATTRIBUTES[type(entity)]) > 1 else (value,)


def unregister_key(model: type) -> None:
    """Drop a registration. Used by tests and by models that change key layout."""
    _KEY_ATTRIBUTES.pop(model, None)
    _KEY_GETTERS.pop(model, None)
