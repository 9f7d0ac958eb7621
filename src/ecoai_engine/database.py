"""Async SQLAlchemy plumbing: declarative base, base repository, sessions.

All tables extend EcoAIModel, which supplies id (UUID), created_at and
updated_at columns. Sessions are request-scoped via the get_db_session
FastAPI dependency: the session commits when the request handler returns
and rolls back if it raises.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Generic, TypeVar

from sqlalchemy import DateTime, select
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ecoai_engine.observability import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base holding the shared metadata for all eco_ tables."""


class EcoAIModel(Base):
    """Abstract base with primary key and audit timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


ModelT = TypeVar("ModelT", bound=EcoAIModel)


class BaseRepository(Generic[ModelT]):
    """CRUD primitives shared by all repositories."""

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    async def create(self, instance: ModelT) -> ModelT:
        """Persist a new row and return it with generated fields populated."""
        self._session.add(instance)
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def get_by_id(self, instance_id: uuid.UUID) -> ModelT | None:
        """Retrieve a row by primary key."""
        return await self._session.get(self._model, instance_id)

    async def update(self, instance: ModelT) -> ModelT:
        """Flush pending attribute changes on an already-loaded row."""
        await self._session.flush()
        await self._session.refresh(instance)
        return instance

    async def delete(self, instance: ModelT) -> None:
        """Delete a row (ORM cascades apply)."""
        await self._session.delete(instance)
        await self._session.flush()

    async def list_all(self) -> list[ModelT]:
        """Return every row of this table ordered by creation time."""
        result = await self._session.execute(select(self._model).order_by(self._model.created_at))
        return list(result.scalars().all())


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_database(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the process-wide async engine and session factory."""
    global _engine, _session_factory
    _engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info("database_initialized", echo=echo)
    return _engine


async def dispose_database() -> None:
    """Dispose of the engine's connection pool on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    if _session_factory is None:
        raise RuntimeError("Database is not initialized; call init_database() first")
    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
