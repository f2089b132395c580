# This project was developed with assistance from AI tools.
"""Integration test fixtures -- real PostgreSQL, no mocks.

A session-scoped container (started once per test run) provides a real
PostgreSQL instance migrated to head, which seeds the system and project
roles plus the service's own database user. Function-scoped fixtures give
each test an isolated DB session with savepoint rollback so tests don't
leak state.
"""

import os
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

# ---------------------------------------------------------------------------
# Mark all tests in this directory as integration
# ---------------------------------------------------------------------------
pytestmark = pytest.mark.integration

_DB_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "db")


# ---------------------------------------------------------------------------
# Session-scoped: container + engine + migrations
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container():
    """Start postgres:16 via testcontainers."""
    with PostgresContainer(
        image="postgres:16",
        username="test",
        password="test",
        dbname="test",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def db_url(pg_container):
    """Async DB URL for asyncpg."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def sync_db_url(pg_container):
    """Sync DB URL for Alembic (psycopg2)."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql://test:test@{host}:{port}/test"


@pytest.fixture(scope="session", autouse=True)
def _run_migrations(sync_db_url):
    """Run alembic upgrade head against the container."""
    os.environ["DATABASE_URL"] = sync_db_url
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(os.path.join(_DB_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(_DB_DIR, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", sync_db_url)
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def async_engine(db_url, _run_migrations):
    """Create an async engine pointing at the test container."""
    engine = create_async_engine(db_url, echo=False, poolclass=NullPool)
    yield engine


# ---------------------------------------------------------------------------
# Function-scoped: per-test session with savepoint rollback
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(async_engine):
    """Per-test DB session with savepoint rollback."""
    conn = await async_engine.connect()
    txn = await conn.begin()
    session = AsyncSession(
        bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False
    )
    yield session
    await session.close()
    await txn.rollback()
    await conn.close()


@pytest.fixture
def client_factory(db_session):
    """Factory returning an async httpx client that authenticates as ``token``.

    Only the token and the DB session are overridden: the request gate
    resolves and provisions the caller against the real database.
    """
    from sims_db import get_db

    from sims_api.main import app
    from sims_api.middleware.auth import get_keycloak_token

    async def _make(token):
        async def _get_db():
            yield db_session

        async def _get_token():
            return token

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_keycloak_token] = _get_token
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        return httpx.AsyncClient(transport=transport, base_url="http://test")

    yield _make

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data helpers
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def role_ids(db_session) -> dict[str, int]:
    """Map every seeded system and project role name to its id."""
    from sims_db import ProjectRole, SystemRole

    ids = {}
    for model in (SystemRole, ProjectRole):
        result = await db_session.execute(select(model.id, model.name))
        ids.update({name: id_ for id_, name in result.all()})
    return ids


@pytest_asyncio.fixture
async def make_user(db_session):
    """Factory creating an active IDIR system user."""
    from sims_db import SystemUser
    from sims_db.enums import IdentitySource

    async def _make(identifier: str) -> SystemUser:
        user = SystemUser(
            user_guid=f"{identifier}-guid",
            user_identifier=identifier,
            identity_source=IdentitySource.IDIR,
            email=f"{identifier}@gov.bc.ca",
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture
async def project(db_session):
    """A project with one survey; returns a reference holding both ids."""
    from sims_db import Project, Survey

    project = Project(name="Moose Survey 2026")
    db_session.add(project)
    await db_session.flush()
    survey = Survey(project_id=project.id, name="Aerial count")
    db_session.add(survey)
    await db_session.flush()
    return SimpleNamespace(id=project.id, survey_id=survey.id)
