"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("DISPLAY_TIMEZONE", "UTC")
os.environ.setdefault("JSON_LOGS", "false")

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.middleware.authorization import Identity
from core.security import create_access_token, hash_password
from database.engine import Base, get_db
from database.models import (  # noqa: F401
    applications,
    candidates,
    communications,
    interviews,
    jobs,
    users,
)
from database.models.users import User, UserRole

TEST_PASSWORD = "SecurePass123!"

_emails = count(1)


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """
    Sessions over a database file, each on its own connection.

    Used where writers must race for real; the in-memory engine shares a
    single connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'recruitment.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def file_users(file_session_factory):
    """Admin, HR and candidate identities in the file database, by role."""
    identities = {}
    async with file_session_factory() as session:
        for role in (UserRole.ADMIN, UserRole.HR, UserRole.CANDIDATE):
            user = User(
                email=f"{role.value}@example.com",
                password_hash="!",
                first_name=role.value.title(),
                last_name="User",
                role=role,
            )
            session.add(user)
            await session.commit()
            identities[role] = Identity(user_id=user.id, role=role)
    return identities


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session):
    """
    Factory that inserts a user and returns its Identity.

    Only users created with ``password`` get a real bcrypt hash; the rest
    get an unusable placeholder to keep the suite fast.
    """

    async def _make_user(
        role: UserRole = UserRole.CANDIDATE,
        email: str = None,
        first_name: str = "Test",
        last_name: str = "User",
        password: str = None,
    ) -> Identity:
        user = User(
            email=email or f"user{next(_emails)}@example.com",
            password_hash=hash_password(password) if password else "!",
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        session.add(user)
        await session.commit()
        return Identity(user_id=user.id, role=role)

    return _make_user


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest_asyncio.fixture
async def hr(make_user):
    return await make_user(UserRole.HR, first_name="Harriet", last_name="Recruiter")


@pytest_asyncio.fixture
async def candidate(make_user):
    return await make_user(UserRole.CANDIDATE, first_name="Jane", last_name="Doe")


@pytest.fixture
def interview_time():
    """A fixed future interview start (UTC)."""
    return datetime.now(timezone.utc).replace(
        hour=14, minute=30, second=0, microsecond=0
    ) + timedelta(days=7)


@pytest.fixture
def auth_headers():
    """Builds the bearer header for an identity."""

    def _auth_headers(identity: Identity) -> dict:
        token = create_access_token(identity.user_id, identity.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the app with the test database."""
    from api.main import app

    async def _get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
