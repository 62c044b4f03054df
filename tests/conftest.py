"""
Pytest configuration and fixtures for data access tests.
"""

import pytest
import pytest_asyncio
from sqlalchemy import create_engine, update
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from data_access import AsyncUnitOfWork, DataContext, UnitOfWork
from data_access.models import Base, Category, Language, Manufacturer, RoleClaim
from shared.infrastructure.db import make_async_session_factory, make_session_factory
from tests.helpers import ACTOR_ID, fixed_clock


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
ASYNC_SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = make_session_factory(engine)


@pytest.fixture
def data_context():
    """Acting principal with a frozen clock."""
    return DataContext(actor_id=ACTOR_ID, culture="en-US", clock=fixed_clock)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def uow(db_session, data_context):
    """Unit of work over the test session."""
    unit = UnitOfWork(db_session, data_context)
    yield unit
    unit.close()


def _seed(session, rows):
    session.add_all(rows)
    session.commit()
    # Start tests with an empty identity map so tracking can be observed
    session.expunge_all()


def _deleted_statement(model, id_):
    # Bypasses the unit of work, which would re-stamp the row as active on insert
    return update(model).where(model.id == id_).values(is_active=False, is_deleted=True)


def _mark_deleted(session, model, id_):
    session.execute(_deleted_statement(model, id_))
    session.commit()


@pytest.fixture
def seed_manufacturers(db_session):
    """Five manufacturers, one of them logically deleted."""
    rows = [
        Manufacturer(id=1, name="Acme", rating=5),
        Manufacturer(id=2, name="Bolt", rating=3),
        Manufacturer(id=3, name="Cobalt", rating=4),
        Manufacturer(id=4, name="Delta", rating=1),
        Manufacturer(id=5, name="Echo", rating=2),
    ]
    _seed(db_session, rows)
    _mark_deleted(db_session, Manufacturer, 5)
    return [row.id for row in rows]


@pytest.fixture
def seed_categories(db_session):
    """
    Category tree:

        1 Apparel
        +-- 2 Shoes
        |   +-- 4 Sneakers
        +-- 3 Hats
    """
    rows = [
        Category(id=1, name="Apparel", display_order=1),
        Category(id=2, name="Shoes", parent_category_id=1, display_order=1),
        Category(id=3, name="Hats", parent_category_id=1, display_order=2),
        Category(id=4, name="Sneakers", parent_category_id=2, display_order=1),
    ]
    _seed(db_session, rows)
    return [row.id for row in rows]


@pytest.fixture
def seed_languages(db_session):
    rows = [
        Language(id=1, name="English", language_culture="en-US", display_order=1),
        Language(id=2, name="Español", language_culture="es-AR", display_order=2),
        Language(id=3, name="Deutsch", language_culture="de-DE", display_order=3),
    ]
    _seed(db_session, rows)
    return [row.id for row in rows]


@pytest.fixture
def seed_role_claims(db_session):
    rows = [
        RoleClaim(id=1, role_id=1, claim_type="permission", claim_value="catalog.read"),
        RoleClaim(id=2, role_id=1, claim_type="permission", claim_value="catalog.write"),
    ]
    _seed(db_session, rows)
    return [row.id for row in rows]


# =============================================================================
# Asyncio fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_engine():
    """Fresh in-memory database per test (one connection shared through StaticPool)."""
    engine_ = create_async_engine(ASYNC_SQLALCHEMY_DATABASE_URL, poolclass=StaticPool)
    async with engine_.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine_
    finally:
        await engine_.dispose()


@pytest_asyncio.fixture
async def async_session(async_engine):
    session = make_async_session_factory(async_engine)()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def async_uow(async_session, data_context):
    unit = AsyncUnitOfWork(async_session, data_context)
    yield unit
    await unit.close()


@pytest_asyncio.fixture
async def async_seed_manufacturers(async_session):
    rows = [
        Manufacturer(id=1, name="Acme", rating=5),
        Manufacturer(id=2, name="Bolt", rating=3),
        Manufacturer(id=3, name="Cobalt", rating=4),
        Manufacturer(id=4, name="Delta", rating=1),
        Manufacturer(id=5, name="Echo", rating=2),
    ]
    async_session.add_all(rows)
    await async_session.commit()
    await async_session.execute(_deleted_statement(Manufacturer, 5))
    await async_session.commit()
    async_session.expunge_all()
    return [row.id for row in rows]
