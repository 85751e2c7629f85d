from collections.abc import AsyncGenerator, Iterator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.rate_limiting import limiter
from app.models.base import Base
from app.models.profile import ROLE_ADMIN
from app.providers import factory
from app.providers.identity.mock_adapter import InMemoryIdentityDirectory
from app.services.access_policy import AccessPolicy

# In-memory SQLite shared across sessions through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_DOMAIN = "@muc.edu.eg"
STUDENT_EMAIL = "student@muc.edu.eg"
ADMIN_EMAIL = "librarian@muc.edu.eg"

# Patched at the issuer's import site so no test ever reaches Resend
PATCH_SEND_EMAIL = "app.services.verification_issuer.send_verification_email"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (same options as the app)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def policy() -> AccessPolicy:
    """Access policy with one admin override."""
    return AccessPolicy(
        allowed_domain=TEST_DOMAIN,
        role_overrides={ADMIN_EMAIL: ROLE_ADMIN},
    )


@pytest.fixture
def directory() -> Iterator[InMemoryIdentityDirectory]:
    """In-memory Identity Directory injected into the factory singleton.

    Yields:
        InMemoryIdentityDirectory instance, reset after the test.
    """
    mock = InMemoryIdentityDirectory()

    # Inject mock into factory singleton
    factory._identity_directory = mock

    yield mock

    # Reset after test
    factory.reset_identity_directory()


@pytest.fixture
def sent_emails() -> Iterator[AsyncMock]:
    """Capture outgoing verification emails instead of sending them."""
    with patch(PATCH_SEND_EMAIL, new_callable=AsyncMock) as mock_send:
        yield mock_send


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    session_factory,
    directory,
    sent_emails,  # noqa: ARG001 - keeps outbound email patched
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and in-memory directory.

    Sets up:
    - Test database connection via dependency override
    - In-memory Identity Directory via dependency override
    - Test domain and admin allow-list on settings
    - Rate limiting disabled

    Yields:
        Configured AsyncClient for making API requests.
    """
    from app.api.deps import get_directory
    from app.core.database import get_db
    from app.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_directory] = lambda: directory

    original_domain = settings.allowed_email_domain
    original_admins = settings.admin_emails
    original_limiter_enabled = limiter.enabled
    settings.allowed_email_domain = TEST_DOMAIN
    settings.admin_emails = [ADMIN_EMAIL]
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Cleanup
    settings.allowed_email_domain = original_domain
    settings.admin_emails = original_admins
    limiter.enabled = original_limiter_enabled
    app.dependency_overrides.clear()
