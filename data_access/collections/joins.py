"""
Full outer join and full outer group-join over two in-memory keyed sequences.

Both sides are read once. Keys are visited in first-seen order: the keys of
a as they appear, then keys present only in b.

Usage:
    rows = full_outer_join(
        stock, prices,
        key_a=lambda s: s.sku, key_b=lambda p: p.sku,
        projection=lambda s, p, sku: (sku, s, p),
        key_comparer=str.casefold,
    )
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Iterable, Iterator, Optional, TypeVar

A = TypeVar("A")
B = TypeVar("B")
K = TypeVar("K")
R = TypeVar("R")

KeyComparer = Optional[Callable[[Any], Hashable]]


def _group(
    items: Iterable[Any],
    key_of: Callable[[Any], K],
    normalize: Callable[[K], Hashable],
    keys: dict[Hashable, K],
) -> dict[Hashable, list[Any]]:
    groups: dict[Hashable, list[Any]] = {}
    for item in items:
        key = key_of(item)
        normalized = normalize(key)
        # First spelling of a key wins when a comparer folds several together
        keys.setdefault(normalized, key)
        groups.setdefault(normalized, []).append(item)
    return groups


def _identity(key: Any) -> Any:
    return key


def full_outer_group_join(
    a: Iterable[A],
    b: Iterable[B],
    key_a: Callable[[A], K],
    key_b: Callable[[B], K],
    projection: Callable[[list[A], list[B], K], R],
    key_comparer: KeyComparer = None,
) -> Iterator[R]:
    """
    Call projection(group_a, group_b, key) once for every key in either input.

    Either group may be empty, never both.

    Args:
        key_comparer: Maps a key to the value used for equality and hashing,
            e.g. str.casefold. Natural equality when omitted.
    """
    normalize = key_comparer or _identity
    keys: dict[Hashable, K] = {}
    groups_a = _group(a, key_a, normalize, keys)
    groups_b = _group(b, key_b, normalize, keys)

    for normalized, key in keys.items():
        yield projection(groups_a.get(normalized, []), groups_b.get(normalized, []), key)


def full_outer_join(
    a: Iterable[A],
    b: Iterable[B],
    key_a: Callable[[A], K],
    key_b: Callable[[B], K],
    projection: Callable[[A, B, K], R],
    default_a: Any = None,
    default_b: Any = None,
    key_comparer: KeyComparer = None,
) -> Iterator[R]:
    """
    Element-wise full outer join.

    For each key, every element of a's group is paired with every element of
    b's group; an empty side contributes its default once.
    """
    def pairs(group_a: list[A], group_b: list[B], key: K) -> list[R]:
        left = group_a or [default_a]
        right = group_b or [default_b]
        return [projection(x, y, key) for x in left for y in right]

    for joined in full_outer_group_join(a, b, key_a, key_b, pairs, key_comparer):
        yield from joined
