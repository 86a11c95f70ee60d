"""
Inventory Catalog Backend — Database Engine & Session Factory
==============================================================

What:  Builds the async SQLAlchemy engine and session factory, and creates
       the schema when asked to.
Why:   The engine (connection pool) is process-wide mutable state. It is
       built by an explicit call during application startup and handed to
       the record store, never looked up from a module global, so tests can
       point the store at a throwaway SQLite file or replace it entirely.
How:   create_engine_from_settings() → create_session_factory() →
       RecordStore(session_factory). dispose_engine() on shutdown.
When:  Once per application lifespan (or once per test).

Connection Pooling Strategy:
    pool_size / max_overflow come from Settings for server databases.
    SQLite (tests, local runs) uses SQLAlchemy's default pool and ignores
    the sizing options, which it does not support.
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from inventory_catalog.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between create_all() at startup and Alembic.
    """
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database URL.

    Args:
        settings: Application settings (database_url and pool sizing).

    Returns:
        AsyncEngine owning the connection pool. The caller disposes it.
    """
    url = make_url(settings.database_url)
    options = {
        "echo": settings.log_level == "DEBUG",
        "pool_pre_ping": settings.db_pool_pre_ping,
    }
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )

    engine = create_async_engine(url, **options)
    logger.info("Database engine created for backend=%s", url.get_backend_name())
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory used by the record store.

    expire_on_commit=False: rows returned from a committed transaction stay
    readable after the session closes.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """
    Create missing tables (CREATE TABLE IF NOT EXISTS semantics).

    What:  Ensures the inventory table exists before the first request.
    When:  Startup, if settings.auto_create_schema is on; tests call it directly.
    """
    # Registers the inventory table on Base.metadata
    from inventory_catalog.models import inventory  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized / ready")


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
