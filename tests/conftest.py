"""Shared test fixtures for loginguard tests."""

import os
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loginguard.api.v1.dependencies import get_lockout_ledger
from loginguard.core.config import get_settings
from loginguard.core.security import hash_password
from loginguard.db import User, UserRole, init_db
from loginguard.db.session import close_db, get_async_session, get_session_factory
from loginguard.lockout import InMemoryLockoutStore, LockoutLedger, LockoutPolicy
from loginguard.main import app

TEST_EMAIL = "buyer@example.com"
TEST_PASSWORD = "correct-horse-battery"
TEST_JWT_SECRET = "test-secret"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs: float) -> None:
        self.now += timedelta(seconds=seconds, **kwargs)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("LOGINGUARD_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOGINGUARD_AUTH__JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("LOGINGUARD_LOCKOUT__BACKEND", "memory")

    # Clear cached singletons to pick up new env vars
    get_settings.cache_clear()
    get_lockout_ledger.cache_clear()

    yield

    get_settings.cache_clear()
    get_lockout_ledger.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> LockoutPolicy:
    return LockoutPolicy(
        threshold=3,
        lockout_duration=timedelta(minutes=5),
        failure_window=timedelta(minutes=5),
    )


@pytest.fixture
def ledger(policy, clock) -> LockoutLedger:
    return LockoutLedger(InMemoryLockoutStore(), policy, clock=clock)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite database with all tables created."""
    engine = await init_db(
        f"sqlite+aiosqlite:///{tmp_path / 'loginguard.db'}",
        echo=False,
        create_tables=True,
    )
    yield engine
    await close_db()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(
        email=TEST_EMAIL,
        name="Test Buyer",
        password_hash=hash_password(TEST_PASSWORD),
        role=UserRole.BUYER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def async_client(session_factory, ledger, test_user) -> AsyncClient:
    """Async test client wired to the test database and the fake-clock ledger."""

    async def override_get_async_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_lockout_ledger] = lambda: ledger

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
