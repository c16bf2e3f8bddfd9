"""
MentorMatch - Async Database Engine & Session Factory

The engine is built lazily from ``DATABASE_URL`` on first use so that the
ORM models (and everything importing them) can be loaded without a live
database.  Exposes the ``get_db`` async generator for FastAPI dependency
injection.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Shared declarative base.

    Every SQLAlchemy model in the project should inherit from this class::

        from app.database import Base

        class MatchingProfile(Base):
            __tablename__ = "matching_profiles"
            ...
    """
    pass


# ------------------------------------------------------------------ #
# Engine construction
# ------------------------------------------------------------------ #

def _pool_kwargs() -> dict:
    settings = get_settings()
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def _normalise_url(url: str) -> str:
    # Upgrade a plain ``postgresql://`` scheme to the asyncpg dialect.
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create (once) the async engine from ``DATABASE_URL``."""
    settings = get_settings()
    engine = create_async_engine(
        _normalise_url(settings.DATABASE_URL),
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **_pool_kwargs(),
    )
    logger.info("Database engine created from DATABASE_URL")
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine() -> None:
    """Dispose the pool if an engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        get_session_factory.cache_clear()
        logger.info("Database engine disposed")


# ------------------------------------------------------------------ #
# FastAPI dependency
# ------------------------------------------------------------------ #

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` and ensure it is closed afterwards.

    Usage in a FastAPI route::

        from fastapi import Depends
        from app.database import get_db

        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
