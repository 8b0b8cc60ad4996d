"""
Database configuration and session management.

Provides:
- Async engine creation with proper configuration
- get_async_session() dependency for FastAPI request-scoped sessions
- check_connection() for the health endpoint
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from src.config import get_settings

logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

# Validate production configuration
if settings.is_production:
    settings.validate_production_config()


def get_async_database_url(sync_url: str) -> str:
    """Convert sync database URL to async URL."""
    if sync_url.lower().startswith("sqlite:///"):
        # SQLite async uses aiosqlite
        return sync_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    elif sync_url.lower().startswith("postgresql://"):
        # PostgreSQL async uses asyncpg
        return sync_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return sync_url


# Create async engine
async_database_url = get_async_database_url(settings.database_url)

if "sqlite" in settings.database_url.lower():
    async_engine = create_async_engine(
        async_database_url,
        echo=settings.log_level == "DEBUG",
    )
else:
    async_engine = create_async_engine(
        async_database_url,
        pool_size=5,  # Maximum number of connections in pool
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Test connections before using them
        echo=settings.log_level == "DEBUG",
    )

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for async database sessions.

    Yields an async database session that is automatically closed after the request.
    Automatically rolls back on exception.

    Usage in FastAPI:
        @router.get("/calendar/status")
        async def status(session: AsyncSession = Depends(get_async_session)):
            providers = await list_connected_providers(session, staff_id)

    Yields:
        AsyncSession: SQLAlchemy async database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_connection() -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
