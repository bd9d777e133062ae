"""
NoteKeep Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh for each test):
    ├── db_engine:        in-memory SQLite (aiosqlite, StaticPool) with all tables
    ├── db_session:       AsyncSession on that engine
    ├── user_repo / note_repo: SQLAlchemy repositories bound to db_session
    ├── make_user:        factory that inserts a password user
    ├── mock_db_session:  AsyncMock session for storage-failure paths
    ├── test_client:      HTTPX AsyncClient on a fresh create_app(), with
    │                     get_db_session overridden to use db_engine
    └── register_user:    registers through the API, returns (user, headers)
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-for-notekeep-suite-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MAX_ATTEMPTS"] = "3"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "1"
os.environ["RETRY_JITTER"] = "0"
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Callable, Dict, Tuple  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db_session  # noqa: E402
from app.models.note import Note  # noqa: E402,F401
from app.models.user import User  # noqa: E402
from app.repositories import SQLAlchemyNoteRepository, SQLAlchemyUserRepository  # noqa: E402
from app.services.credential_service import credential_service  # noqa: E402

TEST_PASSWORD = "correct-horse"


@pytest.fixture
def test_password() -> str:
    """Plaintext password of users created by make_user and register_user."""
    return TEST_PASSWORD


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    A private in-memory database per test.

    StaticPool keeps one connection, so every session in the test sees the
    same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def user_repo(db_session) -> SQLAlchemyUserRepository:
    return SQLAlchemyUserRepository(db_session)


@pytest.fixture
def note_repo(db_session) -> SQLAlchemyNoteRepository:
    return SQLAlchemyNoteRepository(db_session)


@pytest.fixture
def make_user(user_repo) -> Callable:
    """
    Factory inserting a password user directly through the repository.

    Usage:
        async def test_x(make_user):
            alice = await make_user("alice@example.com")
    """
    async def _make(email: str = "alice@example.com", name: str = "Alice") -> User:
        return await user_repo.create(
            email=email,
            name=name,
            password_hash=credential_service.hash_password(TEST_PASSWORD),
        )
    return _make


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    What:    An AsyncMock standing in for AsyncSession.
    Why:     Storage-failure paths are easier to force with a mock than with
             a real database.
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
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(db_engine):
    """
    A new application per test (fresh rate-limit state).

    Each request gets its own session on the test engine, committed or
    rolled back like production. Tests may add their own
    dependency_overrides.
    """
    from app.main import create_app

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application = create_app()
    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_user(test_client) -> Callable:
    """
    Register through POST /api/auth/register.

    Returns (user dict, Authorization headers).
    """
    async def _register(
        email: str = "alice@example.com",
        name: str = "Alice",
        password: str = TEST_PASSWORD,
    ) -> Tuple[dict, Dict[str, str]]:
        response = await test_client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}
    return _register
