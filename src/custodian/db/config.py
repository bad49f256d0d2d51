"""Database configuration and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from custodian.config.settings import Settings, get_settings
from custodian.db.models.base import Base


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create the async engine from settings.

    Args:
        settings: Settings to use (default: cached application settings)
    """
    settings = settings or get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for one unit of work.

    Commits on success, rolls back on error.

    Usage:
        async with session_scope(factory) as session:
            session.add(item)
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
