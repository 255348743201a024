"""Async engine and session maker factories."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ybs.config.settings import Settings, settings as default_settings


def create_engine(
    database_url: str | None = None, settings: Settings | None = None
) -> AsyncEngine:
    """
    Create the async engine.

    Args:
        database_url: Override for settings.database_url
        settings: Settings to use (defaults to the global settings)

    Returns:
        AsyncEngine bound to PostgreSQL (asyncpg) or SQLite (aiosqlite)
    """
    settings = settings or default_settings
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.database_echo)

    return create_async_engine(
        url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker; objects stay usable after commit."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
