"""Test fixtures for OrgLedger backend tests."""

import os
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("APP_ENV", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from orgledger.config import settings
from orgledger.database import Base, get_db
from orgledger.main import app
from orgledger.models.membership import Membership, OrganizationRole
from orgledger.models.org import Organization
from orgledger.models.user import User

# Use SQLite for tests by default (no external DB needed).
# Override with TEST_DATABASE_URL env var for PostgreSQL integration tests.
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///./test.db",
)

# NullPool: every test runs on its own event loop, so connections are never reused
engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

if "sqlite" in TEST_DATABASE_URL:
    # Render PostgreSQL UUID columns as TEXT on SQLite
    from sqlalchemy.dialects.sqlite.base import SQLiteTypeCompiler

    SQLiteTypeCompiler.visit_UUID = lambda self, type_, **kw: "TEXT"  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db() -> AsyncSession:
    """Get a test database session."""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def client(db: AsyncSession) -> AsyncClient:
    """Get an HTTP client with test DB injected."""

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def create_access_token(data: dict, minutes: int = 30) -> str:
    """Mint an access token the way the external identity provider does."""
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(UTC) + timedelta(minutes=minutes), "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def headers_for(user: User) -> dict:
    """Bearer headers as minted by the external auth service."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth() -> Callable[[User], dict]:
    return headers_for


@pytest.fixture
def mint_token() -> Callable[..., str]:
    return create_access_token


@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory: insert a user as the identity provider would."""

    async def _make_user(email: str | None = "", name: str | None = None) -> User:
        if email == "":
            email = f"user-{uuid.uuid4().hex[:8]}@example.com"
        user = User(email=email, name=name)
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def add_member(db: AsyncSession) -> Callable[..., Awaitable[Membership]]:
    """Factory: attach a user to an organization directly in the store."""

    async def _add_member(
        org_id: uuid.UUID, user: User, role: OrganizationRole = OrganizationRole.MEMBER
    ) -> Membership:
        membership = Membership(organization_id=org_id, user_id=user.id, role=role)
        db.add(membership)
        await db.flush()
        return membership

    return _add_member


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(email="admin@example.com", name="Admin")


@pytest.fixture
async def org(client: AsyncClient, admin: User) -> dict:
    """An organization created through the API by ``admin``."""
    response = await client.post("/api/orgs", json={"name": "Acme"}, headers=headers_for(admin))
    assert response.status_code == 201
    return response.json()["organization"]


@pytest.fixture
async def raw_org(db: AsyncSession, admin: User, add_member) -> Organization:
    """An organization inserted directly, with ``admin`` as its admin."""
    organization = Organization(name="Globex", created_by_id=admin.id)
    db.add(organization)
    await db.flush()
    await add_member(organization.id, admin, OrganizationRole.ADMIN)
    return organization
