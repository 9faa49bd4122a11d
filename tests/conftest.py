"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from signposting.db.base import Base
from signposting.db.session import get_db
from signposting.main import app
from signposting.models import AuditEvent, SurgeryFormulary  # noqa: F401
from signposting.rules.models import LUTSInput


# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _test_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )


def _session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = _test_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with _session_maker(async_engine)() as session:
        yield session


@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """Create FastAPI test client with overridden dependencies.

    The test database lives on the client's own event loop, so tables are
    created and the engine disposed through the client's portal.
    """
    engine = _test_engine()
    session_maker = _session_maker(engine)

    async def create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        test_client.portal.call(create_tables)
        yield test_client
        test_client.portal.call(engine.dispose)

    app.dependency_overrides.clear()


@pytest.fixture
def voiding_input() -> LUTSInput:
    """Eligible adult with two voiding indicators and nothing else."""
    return LUTSInput(adult_patient=True, hesitancy=True, weak_stream=True)


@pytest.fixture
def storage_input() -> LUTSInput:
    """Eligible adult with moderate storage-predominant symptoms."""
    return LUTSInput(
        adult_patient=True,
        urgency=True,
        frequency=True,
        nocturia=True,
        ipss_score=14,
    )


@pytest.fixture
def formulary_document() -> dict:
    """Local formulary preferring different agents than the default."""
    return {
        "version": "2.3",
        "preferred_agents_by_class": {
            "Alpha_blocker": ["Alfuzosin", "Tamsulosin"],
            "Antimuscarinic": ["Solifenacin"],
        },
        "exclusions": {
            "avoid_antimuscarinics_in_frailty": True,
            "beta3_hypertension_caution": False,
        },
        "display": {"show_preferred_agent": True},
    }
