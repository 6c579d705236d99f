# FILE: database/engine.py

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .db_config import get_database_url
# Import Base correctly so create_all works
from database.models import Base

LOGGER = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


async def init_db() -> None:
    """
    Initializes the database engine and session maker, and creates missing tables.
    """
    global _engine, _async_session_maker

    if _engine:
        LOGGER.info("Database engine is already initialized.")
        return

    try:
        db_url = get_database_url()

        engine_options = {"pool_pre_ping": True, "echo": False}
        if not db_url.startswith("sqlite"):
            engine_options.update(pool_recycle=3600, pool_size=20, max_overflow=10)

        _engine = create_async_engine(db_url, **engine_options)
        _async_session_maker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        LOGGER.info("SQLAlchemy async engine created and schema verified.")

    except ValueError as ve:
        LOGGER.warning(f"Skipping SQLAlchemy engine creation: {ve}")
        _engine = None
        _async_session_maker = None
    except Exception as e:
        LOGGER.critical(f"Failed to create SQLAlchemy engine: {e}", exc_info=True)
        _engine = None
        _async_session_maker = None


async def close_db() -> None:
    """Closes the database engine connections."""
    global _engine, _async_session_maker
    if _engine:
        LOGGER.info("Closing SQLAlchemy engine connections.")
        await _engine.dispose()
        _engine = None
        _async_session_maker = None


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provides a transactional database session."""
    if _async_session_maker is None:
        await init_db()
        if _async_session_maker is None:
            raise ConnectionError("Database session maker is not initialized and failed to re-initialize.")

    async with _async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
