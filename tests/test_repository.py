"""
Tests for the blocking generic Repository.

Tests cover:
- Query composition (predicate, order, include, global filters)
- Tracked and untracked reads
- Paging and projections
- Aggregates
- Mutations through the unit of work
- Raw SQL and table retargeting
"""

import pytest
from sqlalchemy import event, select, text
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from data_access import EntityState, Repository, UnitOfWork
from data_access.models import Category, Manufacturer, RoleClaim
from shared.utils.exceptions import EmptyAggregate, InvalidArgument, StorageFailure


@pytest.fixture
def manufacturers(uow):
    return Repository(Manufacturer, uow)


@pytest.fixture
def statements(db_session):
    """Collect SQL statements sent to the database."""
    seen = []
    bind = db_session.get_bind()

    def _record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(bind, "before_cursor_execute", _record)
    yield seen
    event.remove(bind, "before_cursor_execute", _record)


class TestRepositoryConstruction:

    def test_requires_model(self, uow):
        with pytest.raises(InvalidArgument):
            Repository(None, uow)

    def test_requires_unit_of_work(self):
        with pytest.raises(InvalidArgument):
            Repository(Manufacturer, None)

    def test_exposes_model_and_unit_of_work(self, uow, manufacturers):
        assert manufacturers.model is Manufacturer
        assert manufacturers.unit_of_work is uow


class TestQuery:
    """Tests for query() and get_all()."""

    def test_excludes_logically_deleted_rows(self, manufacturers, seed_manufacturers):
        names = [m.name for m in manufacturers.query(order_by=Manufacturer.id)]

        assert names == ["Acme", "Bolt", "Cobalt", "Delta"]

    def test_ignore_filters_includes_deleted_rows(self, manufacturers, seed_manufacturers):
        result = manufacturers.get_all(ignore_filters=True)

        assert len(result) == 5

    def test_predicate_and_order(self, manufacturers, seed_manufacturers):
        result = manufacturers.get_all(
            predicate=Manufacturer.rating >= 3,
            order_by=Manufacturer.rating.desc(),
        )

        assert [m.name for m in result] == ["Acme", "Cobalt", "Bolt"]

    def test_predicate_sequence_is_and_ed(self, manufacturers, seed_manufacturers):
        result = manufacturers.get_all(
            predicate=[Manufacturer.rating >= 2, Manufacturer.name.like("%o%")],
            order_by=Manufacturer.id,
        )

        assert [m.name for m in result] == ["Bolt", "Cobalt"]

    def test_order_by_callable(self, manufacturers, seed_manufacturers):
        result = manufacturers.get_all(order_by=lambda stmt: stmt.order_by(Manufacturer.name.desc()))

        assert [m.name for m in result] == ["Delta", "Cobalt", "Bolt", "Acme"]

    def test_query_is_lazy(self, manufacturers, seed_manufacturers, statements):
        result = manufacturers.query()
        assert statements == []

        list(result)
        assert len(statements) == 1

    def test_untracked_results_are_detached(self, db_session, manufacturers, seed_manufacturers):
        result = manufacturers.get_all()

        assert result
        assert all(m not in db_session for m in result)

    def test_tracked_results_stay_in_session(self, db_session, manufacturers, seed_manufacturers):
        result = manufacturers.get_all(tracking=True)

        assert all(m in db_session for m in result)

    def test_untracked_read_keeps_already_tracked_objects(self, db_session, manufacturers, seed_manufacturers):
        acme = manufacturers.find(1)

        manufacturers.get_all()

        assert acme in db_session

    def test_untracked_read_keeps_staged_inserts(self, db_session, data_context, seed_manufacturers):
        with Session(db_session.get_bind(), autoflush=True, expire_on_commit=False) as session:
            uow = UnitOfWork(session, data_context)
            repo = Repository(Manufacturer, uow)
            added = repo.insert(Manufacturer(name="Foxtrot", rating=2))

            # Autoflush writes the insert before the read runs
            assert len(repo.get_all()) == 5
            assert added in session

            added.rating = 9
            uow.commit()
            uow.close()

        db_session.expunge_all()
        assert db_session.get(Manufacturer, added.id).rating == 9

    def test_include_eager_loads_and_filters_children(self, db_session, uow, seed_categories):
        categories = Repository(Category, uow)
        hats = categories.find(3)
        categories.delete(hats)
        uow.commit()
        db_session.expunge_all()

        root = categories.first_or_default(
            Category.id == 1,
            include=[selectinload(Category.categories)],
        )

        assert root not in db_session
        assert [c.name for c in root.categories] == ["Shoes"]

    def test_include_callable(self, uow, seed_categories):
        categories = Repository(Category, uow)

        shoes = categories.first_or_default(
            Category.id == 2,
            include=lambda stmt: stmt.options(selectinload(Category.parent_category)),
        )

        assert shoes.parent_category.name == "Apparel"


class TestPagedQuery:
    """Tests for paged_query()."""

    def test_second_page(self, manufacturers, seed_manufacturers):
        page = manufacturers.paged_query(order_by=Manufacturer.id, page_index=1, page_size=3)

        assert [m.id for m in page.items] == [4]
        assert page.total_count == 4
        assert page.total_pages == 2
        assert page.has_previous_page
        assert not page.has_next_page

    def test_defaults_to_primary_key_order(self, manufacturers, seed_manufacturers):
        page = manufacturers.paged_query(page_size=2)

        assert [m.id for m in page.items] == [1, 2]

    def test_count_uses_predicate(self, manufacturers, seed_manufacturers):
        page = manufacturers.paged_query(predicate=Manufacturer.rating > 2, page_size=10)

        assert page.total_count == 3
        assert len(page) == 3

    def test_page_past_the_end_is_empty(self, manufacturers, seed_manufacturers, statements):
        page = manufacturers.paged_query(page_index=5, page_size=2)

        assert page.items == ()
        assert page.total_count == 4
        # Only the count ran
        assert len(statements) == 1

    def test_projection(self, manufacturers, seed_manufacturers):
        page = manufacturers.paged_query(
            selector=lambda m: m.name.upper(),
            order_by=Manufacturer.name,
            page_size=2,
        )

        assert list(page) == ["ACME", "BOLT"]
        assert page.total_count == 4

    def test_index_from(self, manufacturers, seed_manufacturers):
        page = manufacturers.paged_query(page_index=2, page_size=2, index_from=1)

        assert [m.id for m in page.items] == [3, 4]
        assert page.index_from == 1

    @pytest.mark.parametrize(
        "page_index,page_size,index_from",
        [(-1, 10, 0), (0, 0, 0), (0, -5, 0), (0, 10, 1)],
    )
    def test_invalid_arguments(self, manufacturers, page_index, page_size, index_from):
        with pytest.raises(InvalidArgument):
            manufacturers.paged_query(page_index=page_index, page_size=page_size, index_from=index_from)


class TestFirstOrDefault:

    def test_returns_first_in_order(self, manufacturers, seed_manufacturers):
        result = manufacturers.first_or_default(order_by=Manufacturer.rating)

        assert result.name == "Delta"

    def test_returns_none_when_nothing_matches(self, manufacturers, seed_manufacturers):
        assert manufacturers.first_or_default(Manufacturer.name == "Zulu") is None

    def test_deleted_rows_are_hidden(self, manufacturers, seed_manufacturers):
        assert manufacturers.first_or_default(Manufacturer.name == "Echo") is None
        assert manufacturers.first_or_default(Manufacturer.name == "Echo", ignore_filters=True) is not None

    def test_selector(self, manufacturers, seed_manufacturers):
        result = manufacturers.first_or_default(Manufacturer.id == 3, selector=lambda m: (m.id, m.name))

        assert result == (3, "Cobalt")


class TestAggregates:

    def test_count(self, manufacturers, seed_manufacturers):
        assert manufacturers.count() == 4
        assert manufacturers.count(Manufacturer.rating > 3) == 2
        assert manufacturers.count(ignore_filters=True) == 5

    def test_long_count_matches_count(self, manufacturers, seed_manufacturers):
        assert manufacturers.long_count() == manufacturers.count()

    def test_count_matches_query_length(self, manufacturers, seed_manufacturers):
        predicate = Manufacturer.rating < 4
        assert manufacturers.count(predicate) == len(list(manufacturers.query(predicate)))

    def test_exists(self, manufacturers, seed_manufacturers):
        assert manufacturers.exists(Manufacturer.name == "Acme")
        assert not manufacturers.exists(Manufacturer.name == "Echo")
        assert manufacturers.exists(Manufacturer.name == "Echo", ignore_filters=True)

    def test_sum_max_min_average(self, manufacturers, seed_manufacturers):
        assert manufacturers.sum(Manufacturer.rating) == 13
        assert manufacturers.max(Manufacturer.rating) == 5
        assert manufacturers.min(Manufacturer.rating) == 1
        assert manufacturers.average(Manufacturer.rating) == pytest.approx(3.25)

    def test_sum_of_empty_is_zero(self, manufacturers, seed_manufacturers):
        assert manufacturers.sum(Manufacturer.rating, Manufacturer.rating > 100) == 0

    @pytest.mark.parametrize("function", ["max", "min", "average"])
    def test_empty_aggregate_raises(self, manufacturers, seed_manufacturers, function):
        with pytest.raises(EmptyAggregate):
            getattr(manufacturers, function)(Manufacturer.rating, Manufacturer.rating > 100)

    @pytest.mark.parametrize("function", ["sum", "max", "min", "average"])
    def test_missing_selector_raises(self, manufacturers, function):
        with pytest.raises(InvalidArgument):
            getattr(manufacturers, function)(None)


class TestFind:

    def test_find_ignores_global_filters(self, manufacturers, seed_manufacturers):
        echo = manufacturers.find(5)

        assert echo is not None
        assert echo.is_deleted

    def test_find_returns_tracked_instance(self, db_session, manufacturers, seed_manufacturers):
        assert manufacturers.find(1) in db_session

    def test_find_missing(self, manufacturers, seed_manufacturers):
        assert manufacturers.find(999) is None

    def test_find_requires_key(self, manufacturers):
        with pytest.raises(InvalidArgument):
            manufacturers.find()


class TestMutations:

    def test_insert_then_commit(self, uow, manufacturers, seed_manufacturers):
        added = manufacturers.insert(Manufacturer(name="Foxtrot", rating=2))
        uow.commit()

        assert added.id is not None
        assert manufacturers.count() == 5

    def test_insert_many(self, uow, manufacturers):
        added = manufacturers.insert_many(Manufacturer(name=n) for n in ("A", "B"))
        uow.commit()

        assert len(added) == 2
        assert manufacturers.count() == 2

    def test_update_persists_changes(self, db_session, uow, manufacturers, seed_manufacturers):
        bolt = manufacturers.first_or_default(Manufacturer.id == 2)
        bolt.rating = 4

        manufacturers.update(bolt)
        uow.commit()
        db_session.expunge_all()

        assert manufacturers.find(2).rating == 4

    def test_update_many(self, uow, manufacturers, seed_manufacturers):
        items = manufacturers.get_all(Manufacturer.rating < 3)
        for item in items:
            item.rating = 0

        manufacturers.update_many(items)
        uow.commit()

        assert manufacturers.count(Manufacturer.rating == 0) == 1

    def test_delete_is_logical(self, db_session, uow, manufacturers, seed_manufacturers):
        acme = manufacturers.find(1)

        manufacturers.delete(acme)
        uow.commit()

        assert not manufacturers.exists(Manufacturer.id == 1)
        row = db_session.execute(
            select(Manufacturer.is_active, Manufacturer.is_deleted).where(Manufacturer.id == 1)
        ).one()
        assert tuple(row) == (False, True)

    def test_delete_many(self, uow, manufacturers, seed_manufacturers):
        manufacturers.delete_many(manufacturers.get_all(Manufacturer.rating < 4))
        uow.commit()

        assert manufacturers.count() == 2
        assert manufacturers.count(ignore_filters=True) == 5

    def test_delete_by_id_uses_key_stub(self, uow, manufacturers, seed_manufacturers, statements):
        manufacturers.delete_by_id(3)

        # No read before the write
        assert statements == []
        uow.commit()
        assert not manufacturers.exists(Manufacturer.id == 3)
        assert manufacturers.exists(Manufacturer.id == 3, ignore_filters=True)

    def test_delete_by_id_reuses_tracked_instance(self, uow, manufacturers, seed_manufacturers):
        acme = manufacturers.find(1)

        manufacturers.delete_by_id(1)

        assert uow.state_of(acme) is EntityState.DELETED
        assert acme.is_deleted

    def test_delete_by_id_of_missing_row_is_storage_failure(self, uow, manufacturers, seed_manufacturers):
        manufacturers.delete_by_id(999)

        with pytest.raises(StorageFailure):
            uow.commit()

    def test_delete_by_id_stale_data_is_not_wrapped(self, uow, manufacturers, seed_manufacturers):
        manufacturers.delete_by_id(999)

        with pytest.raises(StaleDataError):
            uow.commit()

    def test_delete_by_id_without_registered_key_fetches(self, db_session, uow, seed_role_claims):
        claims = Repository(RoleClaim, uow)

        claims.delete_by_id(1)
        uow.commit()

        assert claims.count() == 1
        assert db_session.get(RoleClaim, 1) is None

    def test_delete_by_id_missing_plain_row_is_noop(self, uow, seed_role_claims):
        claims = Repository(RoleClaim, uow)

        claims.delete_by_id(999)
        uow.commit()

        assert claims.count() == 2

    def test_delete_plain_entity_removes_row(self, uow, seed_role_claims):
        claims = Repository(RoleClaim, uow)

        claims.delete(claims.find(2))
        uow.commit()

        assert [c.id for c in claims.get_all()] == [1]

    def test_change_entity_state(self, uow, manufacturers, seed_manufacturers):
        delta = manufacturers.find(4)
        delta.rating = 9

        manufacturers.change_entity_state(delta, EntityState.UNCHANGED)
        uow.commit()

        assert manufacturers.find(4).rating == 1


class TestRawQuery:

    def test_positional_parameters(self, manufacturers, seed_manufacturers):
        result = list(manufacturers.raw_query(
            "SELECT * FROM manufacturer WHERE rating >= :p0 AND rating <= :p1 ORDER BY id",
            2, 4,
        ))

        assert [m.name for m in result] == ["Bolt", "Cobalt", "Echo"]

    def test_named_parameters(self, manufacturers, seed_manufacturers):
        result = list(manufacturers.raw_query(
            "SELECT * FROM manufacturer WHERE name = :name", name="Delta",
        ))

        assert [m.id for m in result] == [4]

    def test_requires_sql(self, manufacturers):
        with pytest.raises(InvalidArgument):
            list(manufacturers.raw_query("  "))


class TestChangeTableName:

    def test_reads_from_retargeted_table(self, db_session, manufacturers, seed_manufacturers):
        db_session.execute(text("CREATE TABLE manufacturer_archive AS SELECT * FROM manufacturer WHERE 0"))
        db_session.execute(text(
            "INSERT INTO manufacturer_archive (id, name, rating, is_active, is_deleted) "
            "VALUES (50, 'Archived', 3, 1, 0)"
        ))
        db_session.commit()

        try:
            manufacturers.change_table_name("manufacturer_archive")
            names = [m.name for m in manufacturers.query()]
        finally:
            manufacturers.change_table_name("manufacturer")
            db_session.execute(text("DROP TABLE manufacturer_archive"))

        assert names == ["Archived"]
        assert manufacturers.count() == 4

    def test_requires_name(self, manufacturers):
        with pytest.raises(InvalidArgument):
            manufacturers.change_table_name("")
