"""
Blocking generic repository.

Usage:
    with UnitOfWork(db, DataContext(actor_id=user.id)) as uow:
        repo = Repository(Manufacturer, uow)

        page = repo.paged_query(
            predicate=Manufacturer.rating >= 3,
            order_by=Manufacturer.name,
            page_index=0,
            page_size=20,
        )

        manufacturer = repo.find(42)
        repo.delete(manufacturer)    # logical delete, the row stays
        uow.commit()
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Optional

from data_access.paging import PagedResult, paginate
from data_access.repositories.base import BaseRepository, Include, ModelT, OrderBy, Predicate
from data_access.states import EntityState
from data_access.unit_of_work import IdentitySnapshot, UnitOfWork
from shared.config.constants import Limits
from shared.config.logging import get_logger

logger = get_logger(__name__)


class Repository(BaseRepository[ModelT]):
    """
    Uniform query, paging, aggregation and mutation over one model.

    Reads are untracked unless tracking=True: loaded entities are detached
    from the session before they are returned. Writes only stage changes;
    the unit of work commits them and stamps audit fields.
    """

    def __init__(self, model: type[ModelT], uow: UnitOfWork):
        super().__init__(model, uow)
        self._session = uow.session

    def _materialize(
        self, result: Any, tracking: bool, snapshot: IdentitySnapshot | None
    ) -> list[ModelT]:
        entities = list(result.unique())
        if not tracking:
            self._uow.detach_loaded_since(snapshot)
        return entities

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
    ) -> Iterator[ModelT]:
        """
        Lazily query entities.

        Nothing is sent to the store until the returned iterator is consumed.
        """
        statement = self._compose(predicate, order_by, include, ignore_filters)
        snapshot = None if tracking else self._uow.identity_snapshot()
        yield from self._materialize(self._session.scalars(statement), tracking, snapshot)

    def get_all(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
    ) -> list[ModelT]:
        """Materialized variant of query()."""
        return list(self.query(predicate, order_by, include, tracking, ignore_filters))

    def paged_query(
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
    ) -> PagedResult[Any]:
        """
        One page of entities, or of selector(entity) when a selector is given.

        The total count covers the same filtered, unordered scope as the page.
        Without an explicit order the page is ordered by primary key.

        Raises:
            InvalidArgument: page_index < 0, page_size <= 0, index_from > page_index.
        """
        statement = self._compose(predicate, self._paging_order(order_by), include, ignore_filters)
        count_statement = self._count_statement(predicate, ignore_filters)
        snapshot = None if tracking else self._uow.identity_snapshot()

        def materialize(result: Any) -> list[Any]:
            entities = self._materialize(result, tracking, snapshot)
            if selector is None:
                return entities
            return [selector(entity) for entity in entities]

        page = paginate(
            self._session,
            statement,
            count_statement,
            page_index=page_index,
            page_size=page_size,
            index_from=index_from,
            materialize=materialize,
        )
        logger.debug(
            "Paged query",
            model=self._model.__name__,
            page_index=page_index,
            page_size=page_size,
            total_count=page.total_count,
        )
        return page

    def first_or_default(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        tracking: bool = False,
        ignore_filters: bool = False,
        selector: Optional[Callable[[ModelT], Any]] = None,
    ) -> Any:
        """
        First match, or None.

        Without order_by the store decides which match is "first".
        """
        statement = self._compose(predicate, order_by, include, ignore_filters).limit(1)
        snapshot = None if tracking else self._uow.identity_snapshot()
        entities = self._materialize(self._session.scalars(statement), tracking, snapshot)
        if not entities:
            return None
        return selector(entities[0]) if selector is not None else entities[0]

    def raw_query(self, sql: str, *params: Any, tracking: bool = False, **named: Any) -> Iterator[ModelT]:
        """
        Entities from store-native SQL text.

        Positional parameters are bound as :p0, :p1, ...; keyword parameters
        by name. No escaping happens here, callers own injection safety.
        """
        statement, bind = self._raw_statement(sql, params, named)
        snapshot = None if tracking else self._uow.identity_snapshot()
        yield from self._materialize(self._session.scalars(statement, bind), tracking, snapshot)

    def find(self, *key_values: Any) -> ModelT | None:
        """Identity lookup; returns the tracked instance, ignoring filters."""
        return self._session.get(self._model, self._ident(key_values))

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def count(self, predicate: Predicate = None, ignore_filters: bool = False) -> int:
        return self._session.scalar(self._count_statement(predicate, ignore_filters)) or 0

    def long_count(self, predicate: Predicate = None, ignore_filters: bool = False) -> int:
        return self.count(predicate, ignore_filters)

    def exists(self, predicate: Predicate = None, ignore_filters: bool = False) -> bool:
        return bool(self._session.scalar(self._exists_statement(predicate, ignore_filters)))

    def _aggregate(self, function: str, selector: Any, predicate: Predicate, ignore_filters: bool) -> Any:
        statement = self._aggregate_statement(function, selector, predicate, ignore_filters)
        return self._aggregate_result(function, self._session.execute(statement).one())

    def sum(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False) -> Any:
        """Sum of selector over matches; 0 when nothing matches."""
        return self._aggregate("sum", selector, predicate, ignore_filters)

    def max(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False) -> Any:
        """Raises EmptyAggregate when nothing matches."""
        return self._aggregate("max", selector, predicate, ignore_filters)

    def min(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False) -> Any:
        """Raises EmptyAggregate when nothing matches."""
        return self._aggregate("min", selector, predicate, ignore_filters)

    def average(self, selector: Any, predicate: Predicate = None, ignore_filters: bool = False) -> Any:
        """Raises EmptyAggregate when nothing matches."""
        return self._aggregate("average", selector, predicate, ignore_filters)

    # ------------------------------------------------------------------
    # Mutations (staged, committed by the unit of work)
    # ------------------------------------------------------------------

    def insert(self, entity: ModelT) -> ModelT:
        self._uow.set_state(entity, EntityState.ADDED)
        return entity

    def insert_many(self, entities: Iterable[ModelT]) -> list[ModelT]:
        items = list(entities)
        self._uow.set_states(items, EntityState.ADDED)
        return items

    def update(self, entity: ModelT) -> None:
        """Mark every loaded column as modified."""
        self._uow.set_state(entity, EntityState.MODIFIED)

    def update_many(self, entities: Iterable[ModelT]) -> None:
        self._uow.set_states(entities, EntityState.MODIFIED)

    def delete(self, entity: ModelT) -> None:
        """Logical delete for auditable models, row removal otherwise."""
        self._uow.set_state(entity, EntityState.DELETED)

    def delete_many(self, entities: Iterable[ModelT]) -> None:
        self._uow.set_states(entities, EntityState.DELETED)

    def delete_by_id(self, *key_values: Any) -> None:
        """
        Delete by primary key.

        Uses a key stub when the model registered its key, otherwise fetches
        first. A key that matches nothing is a no-op on the fetch path.
        """
        entity = self._tracked_or_stub(key_values)
        if entity is None:
            entity = self.find(*key_values)
            if entity is None:
                logger.debug("Nothing to delete", model=self._model.__name__, key=key_values)
                return
        self.delete(entity)

    def change_entity_state(self, entity: ModelT, state: EntityState) -> None:
        """Set an entity's persistence state directly."""
        self._uow.set_state(entity, state)
