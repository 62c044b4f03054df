"""
Tree construction from flat parent-referencing rows.

Usage:
    roots = as_hierarchy(
        categories,
        id_of=lambda c: c.id,
        parent_id_of=lambda c: c.parent_category_id,
    )
    for node in roots:
        print(node.depth, node.entity.name, [child.entity.name for child in node.child_nodes])

    ordered = list(flatten(roots, lambda node: node.child_nodes))
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Generic, Hashable, Iterable, Iterator, Optional, TypeVar

from shared.utils.exceptions import HierarchyCycleError

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

_EXHAUSTED: Any = object()


class _ChildNodes(Generic[T]):
    """Children of one node, built on each iteration from the shared index."""

    __slots__ = ("_parent",)

    def __init__(self, parent: "HierarchyNode[T]"):
        self._parent = parent

    def __iter__(self) -> Iterator["HierarchyNode[T]"]:
        parent = self._parent
        for child in parent._index.get(parent._id_of(parent.entity), ()):
            child_id = parent._id_of(child)
            if child_id in parent._ancestors:
                raise HierarchyCycleError(child_id)
            yield HierarchyNode(
                child,
                parent.depth + 1,
                parent._index,
                parent._id_of,
                parent._ancestors | {child_id},
            )

    def __bool__(self) -> bool:
        parent = self._parent
        return bool(parent._index.get(parent._id_of(parent.entity)))


class HierarchyNode(Generic[T]):
    """
    One entity in a tree view.

    Attributes:
        entity: The wrapped item.
        depth: 1 for roots, parent depth + 1 below.
        child_nodes: Lazy, re-iterable children in source order.
    """

    __slots__ = ("entity", "depth", "_index", "_id_of", "_ancestors")

    def __init__(
        self,
        entity: T,
        depth: int,
        index: dict[Any, list[T]],
        id_of: Callable[[T], Any],
        ancestors: frozenset,
    ):
        self.entity = entity
        self.depth = depth
        self._index = index
        self._id_of = id_of
        self._ancestors = ancestors

    @property
    def child_nodes(self) -> _ChildNodes[T]:
        return _ChildNodes(self)

    def __repr__(self) -> str:
        return f"<HierarchyNode(depth={self.depth}, entity={self.entity!r})>"


def as_hierarchy(
    items: Iterable[T],
    id_of: Callable[[T], K],
    parent_id_of: Callable[[T], Optional[K]],
    root_parent_id: Optional[K] = None,
) -> Iterator[HierarchyNode[T]]:
    """
    Lazily yield the root nodes of the forest described by items.

    Roots are items whose parent id is None or equals root_parent_id.
    Items whose parent is not in the collection are unreachable and never
    produced. The parent index is built once, on first iteration.

    Raises:
        HierarchyCycleError: while iterating into a cycle of the parent relation.
    """
    index: dict[Any, list[T]] = defaultdict(list)
    roots: list[T] = []
    for item in items:
        parent_id = parent_id_of(item)
        if parent_id is None or parent_id == root_parent_id:
            roots.append(item)
        else:
            index[parent_id].append(item)

    # Plain dict so missing keys are not inserted on lookup
    index = dict(index)
    for root in roots:
        yield HierarchyNode(root, 1, index, id_of, frozenset({id_of(root)}))


def flatten(
    nodes: Iterable[T],
    children_of: Callable[[T], Iterable[T]],
) -> Iterator[T]:
    """
    Post-order walk: every node comes after all of its descendants.

    Iterative, so depth is not bounded by the interpreter recursion limit.
    Each call starts a fresh traversal.
    """
    # Stack entries are (node, children iterator); a node is emitted once its iterator is spent
    stack: list[tuple[T, Iterator[T]]] = []
    for root in nodes:
        stack.append((root, iter(children_of(root))))
        while stack:
            node, children = stack[-1]
            child = next(children, _EXHAUSTED)
            if child is _EXHAUSTED:
                stack.pop()
                yield node
            else:
                stack.append((child, iter(children_of(child))))


