"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tokenex.core.settings import DatabaseSettings
from tokenex.db.base import BaseEntity


class _EngineHolder:
    """Lazy singleton for the async engine and session factory."""

    engine: AsyncEngine | None = None
    factory: async_sessionmaker[AsyncSession] | None = None


_holder = _EngineHolder()


def _get_engine() -> AsyncEngine:
    if _holder.engine is None:
        db = DatabaseSettings()
        _holder.engine = create_async_engine(
            db.async_url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
        )
    return _holder.engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create the async session factory."""
    if _holder.factory is None:
        _holder.factory = async_sessionmaker(
            _get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _holder.factory


async def create_schema() -> None:
    """Create missing tables; used when AUTH_DB_CREATE_SCHEMA is set."""
    async with _get_engine().begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)


async def dispose_engine() -> None:
    if _holder.engine is not None:
        await _holder.engine.dispose()
        _holder.engine = None
        _holder.factory = None


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
