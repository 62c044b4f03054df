"""
Asyncio generic repository.

Same operations and semantics as Repository, as coroutines over an
AsyncSession. Every driver-touching method takes an optional
cancellation event; when it fires first the in-flight call is cancelled and
OperationCancelled is raised, never a partial result.

Usage:
    async with AsyncUnitOfWork(db, DataContext(actor_id=user.id)) as uow:
        repo = AsyncRepository(Category, uow)
        roots = await repo.get_all(Category.parent_category_id.is_(None))
        await repo.insert(Category(name="Sandals", parent_category_id=roots[0].id))
        await uow.commit()
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Optional, TypeVar

from data_access.paging import PagedResult, paginate_async
from data_access.repositories.base import BaseRepository, Include, ModelT, OrderBy, Predicate
from data_access.states import EntityState
from data_access.unit_of_work import AsyncUnitOfWork
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.utils.exceptions import OperationCancelled

logger = get_logger(__name__)

R = TypeVar("R")

Cancellation = Optional[asyncio.Event]


async def run_cancellable(
    operation: str,
    awaitable: Awaitable[R],
    cancellation: Cancellation = None,
) -> R:
    """
    Await an operation, abandoning it when the cancellation event fires.

    Raises:
        OperationCancelled: The event was set before the operation finished.
    """
    if cancellation is None:
        return await awaitable

    if cancellation.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelled(operation)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancellation.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    if task.cancelled():
        raise OperationCancelled(operation)
    return task.result()


class AsyncRepository(BaseRepository[ModelT]):
    """
    Uniform query, paging, aggregation and mutation over one model (asyncio).

    Reads are untracked unless tracking=True.
    """

    def __init__(self, model: type[ModelT], uow: AsyncUnitOfWork):
        super().__init__(model, uow)
        self._session = uow.session

    async def _scalars(
        self,
        operation: str,
        statement: Any,
        tracking: bool,
        cancellation: Cancellation,
        params: dict[str, Any] | None = None,
    ) -> list[ModelT]:
        snapshot = None if tracking else self._uow.identity_snapshot()
        result = await run_cancellable(
            operation, self._session.scalars(statement, params), cancellation
        )
        entities = list(result.unique())
        if not tracking:
            self._uow.detach_loaded_since(snapshot)
        return entities

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
        cancellation: Cancellation = None,
    ) -> AsyncIterator[ModelT]:
        """Lazily query entities; the statement runs on first iteration."""
        statement = self._compose(predicate, order_by, include, ignore_filters)
        for entity in await self._scalars("query", statement, tracking, cancellation):
            yield entity

    async def get_all(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
        cancellation: Cancellation = None,
    ) -> list[ModelT]:
        statement = self._compose(predicate, order_by, include, ignore_filters)
        return await self._scalars("get_all", statement, tracking, cancellation)

    async def paged_query(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        page_index: int = Limits.DEFAULT_PAGE_INDEX,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
        tracking: bool = False,
        ignore_filters: bool = False,
        index_from: int = Limits.DEFAULT_INDEX_FROM,
        selector: Optional[Callable[[ModelT], Any]] = None,
        cancellation: Cancellation = None,
    ) -> PagedResult[Any]:
        """One page of entities, or of selector(entity) when a selector is given."""
        statement = self._compose(predicate, self._paging_order(order_by), include, ignore_filters)
        count_statement = self._count_statement(predicate, ignore_filters)
        snapshot = None if tracking else self._uow.identity_snapshot()

        def materialize(result: Any) -> list[Any]:
            entities = list(result.unique())
            if not tracking:
                self._uow.detach_loaded_since(snapshot)
            if selector is None:
                return entities
            return [selector(entity) for entity in entities]

        return await run_cancellable(
            "paged_query",
            paginate_async(
                self._session,
                statement,
                count_statement,
                page_index=page_index,
                page_size=page_size,
                index_from=index_from,
                materialize=materialize,
            ),
            cancellation,
        )

    async def first_or_default(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
        selector: Optional[Callable[[ModelT], Any]] = None,
        cancellation: Cancellation = None,
    ) -> Any:
        statement = self._compose(predicate, order_by, include, ignore_filters).limit(1)
        entities = await self._scalars("first_or_default", statement, tracking, cancellation)
        if not entities:
            return None
        return selector(entities[0]) if selector is not None else entities[0]

    async def raw_query(
        self,
        sql: str,
        *params: Any,
        tracking: bool = False,
        cancellation: Cancellation = None,
        **named: Any,
    ) -> AsyncIterator[ModelT]:
        """Entities from store-native SQL text, bound as :p0, :p1, ... and by name."""
        statement, bind = self._raw_statement(sql, params, named)
        for entity in await self._scalars("raw_query", statement, tracking, cancellation, bind):
            yield entity

    async def find(self, *key_values: Any, cancellation: Cancellation = None) -> ModelT | None:
        return await run_cancellable(
            "find", self._session.get(self._model, self._ident(key_values)), cancellation
        )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def count(
        self,
        predicate: Predicate = None,
        ignore_filters: bool = False,
        cancellation: Cancellation = None,
    ) -> int:
        statement = self._count_statement(predicate, ignore_filters)
        return await run_cancellable("count", self._session.scalar(statement), cancellation) or 0

    async def long_count(
        self,
        predicate: Predicate = None,
        ignore_filters: bool = False,
        cancellation: Cancellation = None,
    ) -> int:
        return await self.count(predicate, ignore_filters, cancellation)

    async def exists(
        self,
        predicate: Predicate = None,
        ignore_filters: bool = False,
        cancellation: Cancellation = None,
    ) -> bool:
        statement = self._exists_statement(predicate, ignore_filters)
        return bool(await run_cancellable("exists", self._session.scalar(statement), cancellation))

    async def _aggregate(
        self,
        function: str,
        selector: Any,
        predicate: Predicate,
        ignore_filters: bool,
        cancellation: Cancellation,
    ) -> Any:
        statement = self._aggregate_statement(function, selector, predicate, ignore_filters)
        result = await run_cancellable(function, self._session.execute(statement), cancellation)
        return self._aggregate_result(function, result.one())

    async def sum(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False,
                  cancellation: Cancellation = None) -> Any:
        return await self._aggregate("sum", selector, predicate, ignore_filters, cancellation)

    async def max(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False,
                  cancellation: Cancellation = None) -> Any:
        return await self._aggregate("max", selector, predicate, ignore_filters, cancellation)

    async def min(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False,
                  cancellation: Cancellation = None) -> Any:
        return await self._aggregate("min", selector, predicate, ignore_filters, cancellation)

    async def average(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False,
                      cancellation: Cancellation = None) -> Any:
        return await self._aggregate("average", selector, predicate, ignore_filters, cancellation)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def insert(self, entity: ModelT) -> ModelT:
        await self._uow.set_state(entity, EntityState.ADDED)
        return entity

    async def insert_many(self, entities: Iterable[ModelT]) -> list[ModelT]:
        items = list(entities)
        await self._uow.set_states(items, EntityState.ADDED)
        return items

    async def update(self, entity: ModelT) -> None:
        await self._uow.set_state(entity, EntityState.MODIFIED)

    async def update_many(self, entities: Iterable[ModelT]) -> None:
        await self._uow.set_states(entities, EntityState.MODIFIED)

    async def delete(self, entity: ModelT) -> None:
        await self._uow.set_state(entity, EntityState.DELETED)

    async def delete_many(self, entities: Iterable[ModelT]) -> None:
        await self._uow.set_states(entities, EntityState.DELETED)

    async def delete_by_id(self, *key_values: Any, cancellation: Cancellation = None) -> None:
        entity = self._tracked_or_stub(key_values)
        if entity is None:
            entity = await self.find(*key_values, cancellation=cancellation)
            if entity is None:
                logger.debug("Nothing to delete", model=self._model.__name__, key=key_values)
                return
        await self.delete(entity)

    async def change_entity_state(self, entity: ModelT, state: EntityState) -> None:
        await self._uow.set_state(entity, state)
