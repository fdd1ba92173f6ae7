"""
Pytest configuration and shared fixtures for testing.
"""
import os
from pathlib import Path

# Settings and engines are built at import time, so the environment must be
# prepared before anything from app/ is imported.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DB}")
os.environ.setdefault("DEBUG", "False")
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-pytest-only"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

from contextlib import asynccontextmanager  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.core.auth import create_access_token  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base, User, get_db  # noqa: E402
from tests.factories import create_test_definition  # noqa: E402


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests."""
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Async test engine (aiosqlite) on the same DB file as the sync engine so that
# sync fixtures can create data visible to async endpoint overrides. NullPool
# keeps connections from outliving the event loop that opened them.
ASYNC_SQLALCHEMY_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DB}"

async_test_engine = create_async_engine(
    ASYNC_SQLALCHEMY_DATABASE_URL, poolclass=NullPool
)
AsyncTestingSessionLocal = async_sessionmaker(
    async_test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.

    Overrides get_db (async) to use a test async session backed by
    the same test.db file where db_session creates data.
    """

    async def override_get_db():
        async with AsyncTestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh async database session for each test.
    """
    async with async_test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncTestingSessionLocal() as session:
        yield session

    async with async_test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def test_user(db_session):
    """
    Create a test user in the database.
    """
    user = User(email="test@example.com", name="Test User")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    """
    Create a second participant, for ownership checks.
    """
    user = User(email="other@example.com", name="Other User")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user):
    """
    Create authentication headers for test user.
    """
    access_token = create_access_token({"user_id": test_user.id})
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def other_auth_headers(other_user):
    access_token = create_access_token({"user_id": other_user.id})
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def admin_headers():
    """
    Create headers with valid admin token for admin endpoints.
    """
    return {"X-Admin-Token": settings.ADMIN_TOKEN}


@pytest.fixture
def iq_test(db_session):
    """An active ten-question multiple-choice test."""
    return create_test_definition(db_session)
