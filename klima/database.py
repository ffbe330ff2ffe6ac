"""
Database configuration and session management.

This module contains the SQLAlchemy async engine and session factory used to
read the climate and administrative layers. The service never writes; sessions
are opened per request and closed without committing.
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from klima.config import settings


def _engine_options(database_url: str) -> dict:
    """Build engine keyword arguments for the configured backend."""
    if database_url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    # asyncpg: client-side command timeout plus a server-side statement timeout
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "connect_args": {
            "command_timeout": settings.DB_COMMAND_TIMEOUT,
            "server_settings": {
                "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
                "application_name": "klima-api",
            },
        },
    }


# Configure database URL based on environment
database_url = settings.SQLALCHEMY_DATABASE_URI
if database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+asyncpg://")

# Create async engine
engine = create_async_engine(
    database_url,
    echo=False,
    future=True,
    **_engine_options(database_url),
)

# Create async session factory
async_session = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for all database models
Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Request-scoped read session.

    Nothing is committed; the session is closed when the request ends.
    """
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
