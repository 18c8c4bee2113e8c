"""
Pytest configuration and fixtures for MegaInvest consent tests
"""

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.future import select
from sqlalchemy.pool import NullPool

from megainvest.auth import create_access_token
from megainvest.consent.errors import ConsentSyncError
from megainvest.consent.service import CookieConsentService
from megainvest.consent.store import ConsentStore, MemoryStorage
from megainvest.consent.types import ServerConsent
from megainvest.database import Base, get_db
from megainvest.models.user import Role, User


# Test database URL; a throwaway SQLite file unless TEST_DATABASE_URL is set
def get_test_database_url():
    """Get test database URL from environment or use a temporary SQLite file"""
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url
    db_path = os.path.join(tempfile.mkdtemp(prefix="megainvest-test-"), "test.db")
    return f"sqlite+aiosqlite:///{db_path}"


TEST_DATABASE_URL = get_test_database_url()

# Connections are not reused across tests, each test runs on its own event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

from main import app  # noqa: E402


async def override_get_db():
    """Override database dependency for testing"""
    async with TestSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def setup_test_database():
    """
    Create a fresh schema with the default roles for each test that needs it.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        for name in ("user", "admin", "superadmin"):
            session.add(Role(name=name, permissions=["*"] if name != "user" else []))
        await session.commit()

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def test_db(setup_test_database) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests that need it."""
    async with TestSessionLocal() as session:
        yield session


async def _create_user(db: AsyncSession, username: str, email: str, role_name: str) -> User:
    result = await db.execute(select(Role).where(Role.name == role_name))
    role = result.scalars().first()

    user = User(username=username, email=email, hashed_password="not-a-real-hash", role_id=role.id)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_user(test_db: AsyncSession) -> User:
    """Create a test user with 'user' role"""
    return await _create_user(test_db, "testuser", "testuser@example.com", "user")


@pytest.fixture
async def other_user(test_db: AsyncSession) -> User:
    """A second plain user"""
    return await _create_user(test_db, "otheruser", "other@example.com", "user")


@pytest.fixture
async def test_admin(test_db: AsyncSession) -> User:
    """Create a test admin user"""
    return await _create_user(test_db, "testadmin", "admin@example.com", "admin")


@pytest.fixture
async def test_superadmin(test_db: AsyncSession) -> User:
    """Create a test superadmin user"""
    return await _create_user(test_db, "testsuperadmin", "superadmin@example.com", "superadmin")


def _auth_headers(user: User) -> dict:
    access_token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return _auth_headers(test_user)


@pytest.fixture
def admin_auth_headers(test_admin: User) -> dict:
    """Generate authentication headers for test admin"""
    return _auth_headers(test_admin)


@pytest.fixture
def superadmin_auth_headers(test_superadmin: User) -> dict:
    """Generate authentication headers for test superadmin"""
    return _auth_headers(test_superadmin)


@pytest.fixture
async def client(setup_test_database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the application, on a fresh database"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Consent client fixtures
# ============================================================================

# 2026-01-01T00:00:00Z in epoch milliseconds
FIXED_NOW = 1_767_225_600_000


class FakeClock:
    """Settable epoch-milliseconds clock"""

    def __init__(self, now: int = FIXED_NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_days(self, days: float) -> None:
        self.now += int(days * 24 * 60 * 60 * 1000)


class FakeConsentTransport:
    """
    In-memory stand-in for the consent API.

    Records every call; ``fail`` makes each call raise ``ConsentSyncError``.
    """

    def __init__(self, consent: ServerConsent | None = None, fail: bool = False):
        self.consent = consent
        self.fail = fail
        self.fetch_calls = 0
        self.saved: list[dict] = []
        self.deleted: list[str | None] = []

    async def fetch_consent(self) -> ServerConsent | None:
        self.fetch_calls += 1
        if self.fail:
            raise ConsentSyncError("Server unreachable")
        return self.consent

    async def save_consent(self, payload: dict) -> None:
        if self.fail:
            raise ConsentSyncError("Failed to store cookie consent", status_code=500)
        self.saved.append(payload)

    async def delete_consent(self, session_id: str | None = None) -> None:
        if self.fail:
            raise ConsentSyncError("Failed to delete cookie consent", status_code=500)
        self.deleted.append(session_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def consent_store(storage: MemoryStorage) -> ConsentStore:
    return ConsentStore(storage)


@pytest.fixture
def fake_transport() -> FakeConsentTransport:
    return FakeConsentTransport()


@pytest.fixture
async def consent_service(consent_store: ConsentStore, fake_transport: FakeConsentTransport, clock: FakeClock):
    """Consent service over in-memory storage, a fake transport and a fixed clock"""
    service = CookieConsentService(consent_store, transport=fake_transport, clock=clock)
    yield service
    await service.flush()
