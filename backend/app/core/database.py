"""Async database engine and session management.

One engine serves both tables the verification flow owns: ``verifications``
(Code Store) and ``users`` (Profile Store). Services commit their own units of
work; the request-scoped session commits anything still pending at the end of
the request and rolls back on error.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine from settings.

    Args:
        url: Override for the database URL (defaults to settings.database_url).

    Returns:
        Configured AsyncEngine. No connection is opened until first use.
    """
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


engine = build_engine()

# expire_on_commit=False: services read ids and emails after committing
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a request-scoped database session."""
    async with async_session_factory() as session:
        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    await engine.dispose()
