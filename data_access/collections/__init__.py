"""
In-memory collection algorithms layered over repository results.

- hierarchy: lazy trees from flat parent-referencing rows, post-order flatten
- joins: full outer join / full outer group-join over keyed sequences
"""

from .hierarchy import HierarchyNode, as_hierarchy, flatten
from .joins import full_outer_group_join, full_outer_join

__all__ = [
    "HierarchyNode",
    "as_hierarchy",
    "flatten",
    "full_outer_group_join",
    "full_outer_join",
]
