"""
SchoolDesk Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine: aiosqlite engine on a throwaway file, schema created
    ├── db_session: AsyncSession on that engine (rolled back afterwards)
    ├── mock_db_session: AsyncMock session for store-failure tests
    ├── school_a / school_b: ids of two schools
    ├── make_term: inserts a Term row with explicit created_at/status
    ├── auth_headers: builds Bearer headers for a role and school
    ├── test_client: HTTPX AsyncClient wired to the app and db_engine
    └── competing_activation: a rival Active insert mid-transaction
"""

import os
import tempfile
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must happen BEFORE any schooldesk import: settings are read at import time
_TEST_DIR = tempfile.mkdtemp(prefix="schooldesk_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/health.db"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from schooldesk.auth import Principal, Role, create_access_token  # noqa: E402
from schooldesk.database import Base, get_db_session  # noqa: E402
from schooldesk.models.school import School  # noqa: E402
from schooldesk.models.term import Term, TermName, TermStatus  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    A real SQLite database per test.

    Using a file rather than :memory: lets the API client open its own
    connections and still see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/schooldesk.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.side_effect = IntegrityError("...", {}, Exception())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Data Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def school_a() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def school_b() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_term(db_session):
    """
    Insert a term row directly, bypassing the lifecycle service.

    `age` orders rows: a larger age means an older created_at. Callers are
    responsible for not inserting two Active rows into one school.
    """

    async def _make(
        school_id: Optional[uuid.UUID],
        status: TermStatus = TermStatus.INACTIVE,
        age: int = 0,
        term: TermName = TermName.FIRST,
        session: str = "2024/2025",
    ) -> Term:
        row = Term(
            school_id=school_id,
            session=session,
            term=term,
            start=date(2024, 9, 1),
            end=date(2024, 12, 20),
            days_open=110,
            status=status,
            created_at=BASE_TIME - timedelta(days=age),
            updated_at=BASE_TIME - timedelta(days=age),
        )
        db_session.add(row)
        await db_session.flush()
        return row

    return _make


@pytest.fixture
def make_school(db_session):
    async def _make(name: str = "Green Valley Academy", school_id: Optional[uuid.UUID] = None) -> School:
        row = School(
            id=school_id or uuid.uuid4(),
            name=name,
            school_type="Secondary",
            email="office@greenvalley.example",
            address="12 Palm Avenue",
        )
        db_session.add(row)
        await db_session.flush()
        return row

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Auth Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def auth_headers():
    """
    Build an Authorization header for a role.

    Usage:
        headers = auth_headers(Role.ADMIN, school_a)
    """

    def _headers(role: Role, school_id: Optional[uuid.UUID] = None, linked=()) -> dict:
        principal = Principal(
            id=f"{role.value}-user",
            role=role,
            school_id=school_id,
            linked_school_ids=frozenset(linked),
        )
        return {"Authorization": f"Bearer {create_access_token(principal)}"}

    return _headers


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine):
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    get_db_session is overridden to use the per-test engine; it commits and
    rolls back exactly like the production dependency.
    """
    from schooldesk.main import app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def _test_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ══════════════════════════════════════════════════════════════════════════
# Concurrency Simulation
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def competing_activation(monkeypatch):
    """
    Simulate another transaction activating a term in the same partition
    right after the lifecycle service deactivated the siblings.

    The competing row is inserted through the request's own session, so the
    service's next write trips the one-Active-term index.
    """
    from sqlalchemy import insert

    from schooldesk.services.term_service import TermService

    original = TermService._deactivate_active

    async def _deactivate_then_compete(self, db, partition, exclude_id=None):
        deactivated = await original(self, db, partition, exclude_id)
        await db.execute(
            insert(Term).values(
                id=uuid.uuid4(),
                school_id=partition.school_id,
                session="2024/2025",
                term=TermName.SECOND,
                start=date(2025, 1, 6),
                end=date(2025, 4, 4),
                days_open=88,
                status=TermStatus.ACTIVE,
            )
        )
        return deactivated

    monkeypatch.setattr(TermService, "_deactivate_active", _deactivate_then_compete)
