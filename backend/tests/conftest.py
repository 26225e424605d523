"""Pytest configuration and fixtures for backend tests.

Every test gets a fresh in-memory SQLite database (aiosqlite). StaticPool
keeps one shared connection, so the request session, the authorizer's own
session and the sweeper's sessions all see the same data.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)
os.environ.pop("SMTP_HOST", None)

# Test credentials
TEST_PASSWORD = "secret12"
TEST_ADMIN_EMAIL = "admin@authgate.io"
TEST_ADMIN_PASSWORD = "admin-password-123"


class RecordingNotifier:
    """Notifier double that remembers what would have been sent."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_with: Exception | None = None

    async def send(self, operation, recipient: str, link: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((getattr(operation, "value", operation), recipient, link))

    def last_token(self) -> str:
        return self.sent[-1][2].rsplit("/", 1)[-1]


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create an in-memory SQLite engine with all tables."""
    from authgate.core.database import Base
    from authgate.models import IssuedToken, Principal  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def codec():
    """The process-wide token codec (keyed by JWT_SECRET_KEY above)."""
    from authgate.services.token_codec import get_token_codec

    return get_token_codec()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def auth_service(db_session, codec, notifier):
    from authgate.services.auth_session import AuthSessionService

    return AuthSessionService(db_session, codec=codec, notifier=notifier)


# --- Principal Helpers ---


@pytest.fixture
def principal_factory(db_session):
    """Factory for creating principals directly in the database."""
    from authgate.models.principal import Principal, Role
    from authgate.services.credentials import hash_password

    async def _create_principal(
        email: str = "a@x.com",
        password: str = TEST_PASSWORD,
        role: Role = Role.USER,
        enabled: bool = True,
        account_non_locked: bool = True,
    ) -> Principal:
        principal = Principal(
            email=email,
            password_hash=hash_password(password),
            role=role.value,
            enabled=enabled,
            account_non_locked=account_non_locked,
        )
        db_session.add(principal)
        await db_session.commit()
        await db_session.refresh(principal)
        return principal

    return _create_principal


@pytest_asyncio.fixture
async def user(principal_factory):
    """An enabled USER account."""
    return await principal_factory()


@pytest_asyncio.fixture
async def admin_user(principal_factory):
    """An enabled ADMIN account."""
    from authgate.models.principal import Role

    return await principal_factory(
        email=TEST_ADMIN_EMAIL, password=TEST_ADMIN_PASSWORD, role=Role.ADMIN
    )


@pytest_asyncio.fixture
async def user_headers(auth_service, user) -> dict[str, str]:
    """Headers with a stored access token for the USER account."""
    tokens = await auth_service.authenticate(user.email, TEST_PASSWORD)
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest_asyncio.fixture
async def admin_headers(auth_service, admin_user) -> dict[str, str]:
    """Headers with a stored access token for the ADMIN account."""
    tokens = await auth_service.authenticate(admin_user.email, TEST_ADMIN_PASSWORD)
    return {"Authorization": f"Bearer {tokens.access_token}"}


# --- HTTP Client ---


@pytest.fixture
def app(session_factory, db_session, notifier):
    """Application wired to the test database and notifier."""
    from authgate.core.database import get_db
    from authgate.main import create_app
    from authgate.services.notifier import get_notifier

    application = create_app(session_factory=session_factory)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client (lifespan is not run, so no sweeper starts)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
