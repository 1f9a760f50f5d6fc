"""
Database Connection Module
Handles the database connection using the SQLAlchemy async engine.
PostgreSQL (psycopg) in deployments, SQLite (aiosqlite) for local runs and tests.
"""

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from foodhub.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE rules unless foreign keys are switched on per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options() -> dict:
    if settings.is_sqlite:
        return {"echo": settings.database_echo}
    return {
        "echo": settings.database_echo,
        "pool_size": 5,  # Connection pool size
        "max_overflow": 10,  # Extra connections when pool is full
        "pool_pre_ping": True,
    }


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options())

if settings.is_sqlite:
    enable_sqlite_foreign_keys(engine)

# Session factory - creates new database sessions
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # Objects remain accessible after commit
)


# Base class for all our models
class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register the mappers on Base.metadata before create_all
    from foodhub import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")
