"""
Base Repository implementation.

Holds the query composition shared by the blocking and asyncio
repositories. Every read path composes in the same fixed order:

    tracking -> include -> predicate -> global filters -> order

so a predicate or an include means the same thing whether it is wrapped by
query, paged_query, first_or_default or an aggregate.

Argument forms accepted by the read operations:
- predicate: a boolean clause, or a list/tuple of clauses (AND-ed)
- order_by: a column expression, a list/tuple of them, or a callable Select -> Select
- include: a loader option (selectinload/joinedload), a list/tuple of them,
  or a callable Select -> Select
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Sequence, TypeVar, Union

from sqlalchemy import ColumnElement, Select, func, inspect as sa_inspect, select, text
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.sql.elements import ClauseElement, quoted_name

from data_access.filters import loader_criteria, query_filters_for
from data_access.keys import key_attributes
from data_access.models.base import Base
from data_access.unit_of_work import BaseUnitOfWork
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.utils.exceptions import EmptyAggregate, InvalidArgument

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

Predicate = Union[ColumnElement[bool], Sequence[ColumnElement[bool]], None]
OrderBy = Union[Any, Sequence[Any], Callable[[Select], Select], None]
Include = Union[Any, Sequence[Any], Callable[[Select], Select], None]


_AGGREGATES: dict[str, Callable[[Any], Any]] = {
    "sum": lambda selector: func.coalesce(func.sum(selector), 0),
    "max": func.max,
    "min": func.min,
    "average": func.avg,
}


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _is_sql(value: Any) -> bool:
    return isinstance(value, ClauseElement) or hasattr(value, "__clause_element__")


def apply_include(statement: Select, include: Include) -> Select:
    """Apply eager-loading options."""
    if include is None:
        return statement
    if isinstance(include, (list, tuple)):
        return statement.options(*include) if include else statement
    if callable(include) and not hasattr(include, "process_compile_state"):
        return include(statement)
    return statement.options(include)


def apply_order(statement: Select, order_by: OrderBy) -> Select:
    """Apply ordering."""
    if order_by is None:
        return statement
    if isinstance(order_by, (list, tuple)):
        return statement.order_by(*order_by) if order_by else statement
    if _is_sql(order_by):
        return statement.order_by(order_by)
    if callable(order_by):
        return order_by(statement)
    return statement.order_by(order_by)


class BaseRepository(Generic[ModelT]):
    """
    Statement building shared by Repository and AsyncRepository.

    Subclasses only decide how statements are executed (blocking or awaited).
    """

    def __init__(self, model: type[ModelT], uow: BaseUnitOfWork):
        if model is None:
            raise InvalidArgument("model is required")
        if uow is None:
            raise InvalidArgument("unit of work is required", model=model.__name__)
        self._model = model
        self._uow = uow

    @property
    def model(self) -> type[ModelT]:
        """The SQLAlchemy model class."""
        return self._model

    @property
    def unit_of_work(self) -> BaseUnitOfWork:
        return self._uow

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _criteria(self, predicate: Predicate, ignore_filters: bool) -> list[ColumnElement[bool]]:
        criteria = _as_list(predicate)
        if not ignore_filters:
            criteria.extend(query_filters_for(self._model))
        return criteria

    def _compose(
        self,
        predicate: Predicate = None,
        order_by: OrderBy = None,
        include: Include = None,
        ignore_filters: bool = False,
    ) -> Select:
        """Entity select: include -> predicate -> global filters -> order."""
        statement = apply_include(select(self._model), include)
        criteria = self._criteria(predicate, ignore_filters)
        if criteria:
            statement = statement.where(*criteria)
        if not ignore_filters:
            statement = statement.options(*loader_criteria())
        return apply_order(statement, order_by)

    def _paging_order(self, order_by: OrderBy) -> OrderBy:
        """Order by primary key when the caller gave no order, so pages partition."""
        if order_by is not None:
            return order_by
        return list(sa_inspect(self._model).primary_key)

    def _count_statement(self, predicate: Predicate = None, ignore_filters: bool = False) -> Select:
        """COUNT over the filtered, unordered scope."""
        statement = select(func.count()).select_from(self._model)
        criteria = self._criteria(predicate, ignore_filters)
        if criteria:
            statement = statement.where(*criteria)
        return statement

    def _exists_statement(self, predicate: Predicate = None, ignore_filters: bool = False) -> Select:
        inner = select(self._model)
        criteria = self._criteria(predicate, ignore_filters)
        if criteria:
            inner = inner.where(*criteria)
        return select(inner.exists())

    def _aggregate_statement(
        self,
        function: str,
        selector: Any,
        predicate: Predicate = None,
        ignore_filters: bool = False,
    ) -> Select:
        """SELECT fn(selector), COUNT(*) over the filtered scope."""
        if selector is None:
            raise InvalidArgument(
                f"selector is required for aggregate '{function}'",
                model=self._model.__name__,
            )
        aggregate = _AGGREGATES[function](selector)
        statement = select(aggregate, func.count()).select_from(self._model)
        criteria = self._criteria(predicate, ignore_filters)
        if criteria:
            statement = statement.where(*criteria)
        return statement

    def _aggregate_result(self, function: str, row: Any) -> Any:
        value, matched = row
        if function != "sum" and not matched:
            raise EmptyAggregate(function, model=self._model.__name__)
        return value

    def _raw_statement(self, sql: str, params: tuple[Any, ...], named: dict[str, Any]):
        if not sql or not sql.strip():
            raise InvalidArgument("sql is required", model=self._model.__name__)
        bind = {f"{Limits.RAW_PARAM_PREFIX}{index}": value for index, value in enumerate(params)}
        bind.update(named)
        return select(self._model).from_statement(text(sql)), bind

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @staticmethod
    def _ident(key_values: tuple[Any, ...]) -> Any:
        if not key_values:
            raise InvalidArgument("at least one key value is required")
        return key_values[0] if len(key_values) == 1 else tuple(key_values)

    def _tracked_or_stub(self, key_values: tuple[Any, ...]) -> ModelT | None:
        """
        Instance to delete by key without a round trip.

        Returns the tracked instance when present, a detached stub carrying
        only the key when the model registered its key, and None when the
        caller has to fetch first.
        """
        attributes = key_attributes(self._model)
        if attributes is None:
            return None
        if len(attributes) != len(key_values):
            raise InvalidArgument(
                f"{self._model.__name__} expects {len(attributes)} key value(s)",
                model=self._model.__name__,
                given=len(key_values),
            )

        tracked = self._uow.sync_session.identity_map.get(
            self._uow.sync_session.identity_key(self._model, self._ident(key_values))
        )
        if tracked is not None:
            return tracked

        stub = self._model()
        for name, value in zip(attributes, key_values):
            setattr(stub, name, value)
        make_transient_to_detached(stub)
        return stub

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def change_table_name(self, name: str) -> None:
        """
        Point the mapped model at another physical table with the same columns.

        The change applies to every session using the model. Compiled
        statement caches are cleared so no statement keeps the old name.
        """
        if not name:
            raise InvalidArgument("table name is required", model=self._model.__name__)

        table = self._model.__table__
        if table.name == name:
            return

        logger.warning(
            "Retargeting mapped table",
            model=self._model.__name__,
            old_table=table.name,
            new_table=name,
        )
        table.name = quoted_name(name, table.name.quote)
        table.fullname = f"{table.schema}.{name}" if table.schema else name

        sa_inspect(self._model).base_mapper._compiled_cache.clear()
        bind = self._uow.sync_session.get_bind()
        bind.clear_compiled_cache()
