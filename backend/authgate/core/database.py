"""AuthGate Database Configuration - Async SQLAlchemy."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from authgate.core.config import Settings, settings


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL.

    Pool sizing (DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
    DB_POOL_RECYCLE) only applies to pooled server databases; SQLite
    drivers pick their own pool class and reject these options.
    """
    options: dict[str, Any] = {
        # Only echo SQL when debug is explicitly enabled
        "echo": config.debug and config.log_level == "DEBUG",
    }
    if not config.is_sqlite:
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_timeout=config.db_pool_timeout,
            pool_recycle=config.db_pool_recycle,
            pool_pre_ping=True,
        )
    return create_async_engine(config.database_url, **options)


engine = build_engine(settings)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            # BaseException also covers asyncio.CancelledError, so a cancelled
            # request never leaves a half-applied transaction behind
            await session.rollback()
            raise


async def check_db_connection(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> bool:
    """Check if database is reachable."""
    factory = session_factory or async_session_maker
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
            return True
    except (OSError, ConnectionError) as e:
        from authgate.core.logging import get_logger

        get_logger("database").debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        from authgate.core.logging import get_logger

        get_logger("database").warning(f"Unexpected error checking database connection: {e}")
        return False
