"""
Paged results.

A PagedResult is a bounded window over a filtered, ordered collection plus
the collection's total size. The total is counted against the same filter
scope as the window, before skip/take is applied. Count and window are two
reads: under concurrent writes they are only as consistent as the store's
isolation level makes them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Sequence, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.utils.exceptions import InvalidArgument

T = TypeVar("T")
R = TypeVar("R")


def validate_page(page_index: int, page_size: int, index_from: int = 0) -> None:
    """Reject page arguments that cannot describe a window."""
    if page_size <= 0:
        raise InvalidArgument("page_size must be greater than zero", page_size=page_size)
    if page_index < 0:
        raise InvalidArgument("page_index must not be negative", page_index=page_index)
    if index_from < 0 or index_from > page_index:
        raise InvalidArgument(
            "index_from must be between zero and page_index",
            index_from=index_from,
            page_index=page_index,
        )


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """
    One page of results.

    Attributes:
        items: Materialized entities of this page (at most page_size).
        page_index: Index of this page, counted from index_from.
        page_size: Requested page size.
        total_count: Number of matching rows before paging.
        index_from: Number given to the first page (0 by default).
    """

    items: Sequence[T]
    page_index: int
    page_size: int
    total_count: int
    index_from: int = 0
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        validate_page(self.page_index, self.page_size, self.index_from)
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "total_pages", math.ceil(self.total_count / self.page_size))

    @property
    def offset(self) -> int:
        return (self.page_index - self.index_from) * self.page_size

    @property
    def has_previous_page(self) -> bool:
        return self.page_index - self.index_from > 0

    @property
    def has_next_page(self) -> bool:
        return self.page_index - self.index_from + 1 < self.total_pages

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def map(self, converter: Callable[[T], R]) -> "PagedResult[R]":
        """Project every item, keeping the page metadata."""
        return PagedResult(
            items=[converter(item) for item in self.items],
            page_index=self.page_index,
            page_size=self.page_size,
            total_count=self.total_count,
            index_from=self.index_from,
        )

    @classmethod
    def empty(cls, page_size: int = Limits.DEFAULT_PAGE_SIZE) -> "PagedResult[Any]":
        return cls(items=(), page_index=0, page_size=page_size, total_count=0)

    @classmethod
    def from_sequence(
        cls,
        source: Sequence[T],
        page_index: int = Limits.DEFAULT_PAGE_INDEX,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
        index_from: int = Limits.DEFAULT_INDEX_FROM,
    ) -> "PagedResult[T]":
        """Page an in-memory sequence."""
        validate_page(page_index, page_size, index_from)
        start = (page_index - index_from) * page_size
        return cls(
            items=list(source[start:start + page_size]),
            page_index=page_index,
            page_size=page_size,
            total_count=len(source),
            index_from=index_from,
        )


def _window(statement: Select, page_index: int, page_size: int, index_from: int) -> Select:
    return statement.offset((page_index - index_from) * page_size).limit(page_size)


def paginate(
    session: Session,
    statement: Select,
    count_statement: Select,
    page_index: int = Limits.DEFAULT_PAGE_INDEX,
    page_size: int = Limits.DEFAULT_PAGE_SIZE,
    index_from: int = Limits.DEFAULT_INDEX_FROM,
    materialize: Callable[[Any], list[Any]] = list,
) -> PagedResult[Any]:
    """
    Count, then fetch one window.

    Args:
        session: Blocking session.
        statement: Filtered and ordered entity select.
        count_statement: COUNT over the same filter scope, unordered.
        materialize: Turns the scalar result into the page items.
    """
    validate_page(page_index, page_size, index_from)
    total_count = session.scalar(count_statement) or 0
    items: list[Any] = []
    if total_count > (page_index - index_from) * page_size:
        items = materialize(session.scalars(_window(statement, page_index, page_size, index_from)))
    return PagedResult(
        items=items,
        page_index=page_index,
        page_size=page_size,
        total_count=total_count,
        index_from=index_from,
    )


async def paginate_async(
    session: AsyncSession,
    statement: Select,
    count_statement: Select,
    page_index: int = Limits.DEFAULT_PAGE_INDEX,
    page_size: int = Limits.DEFAULT_PAGE_SIZE,
    index_from: int = Limits.DEFAULT_INDEX_FROM,
    materialize: Callable[[Any], list[Any]] = list,
) -> PagedResult[Any]:
    """Async twin of paginate()."""
    validate_page(page_index, page_size, index_from)
    total_count = await session.scalar(count_statement) or 0
    items: list[Any] = []
    if total_count > (page_index - index_from) * page_size:
        result = await session.scalars(_window(statement, page_index, page_size, index_from))
        items = materialize(result)
    return PagedResult(
        items=items,
        page_index=page_index,
        page_size=page_size,
        total_count=total_count,
        index_from=index_from,
    )
