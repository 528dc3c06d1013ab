"""
Yote — Database Session Management
===================================

What:  Async SQLAlchemy engine, session factory, document base class and
       the FastAPI session dependency.
How:   The session dependency commits on success and rolls back on error.
       Models inherit from `Base`, which also knows how to serialize a row
       as a document keyed by stored field names ("_id", "_task", ...).

Connection Pooling:
    pool_size / max_overflow / pool_pre_ping come from settings. SQLite URLs
    (used by the test suite) get no pool sizing arguments.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import Column
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from yote.config import settings


def _engine_kwargs(url: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return kwargs


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_kwargs(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: documents are serialized after the commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def new_object_id() -> str:
    """32-char hex id assigned to every new document."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Column names are the document field names exposed over the API; Python
    attribute names may differ (`task_id` is stored as `_task`). The helpers
    below translate between the two so services can filter and update by
    the names clients send.
    """

    @classmethod
    def field_columns(cls) -> Dict[str, Column]:
        """Map of stored field name → Column."""
        return {column.name: column for column in cls.__table__.columns}

    @classmethod
    def field_attributes(cls) -> Dict[str, str]:
        """Map of stored field name → mapped attribute key."""
        mapper = cls.__mapper__
        return {attr.columns[0].name: attr.key for attr in mapper.column_attrs}

    def to_document(self) -> Dict[str, Any]:
        """Serialize this row as a document keyed by stored field names."""
        return {
            field: getattr(self, key)
            for field, key in self.field_attributes().items()
        }


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns, rolls back and re-raises on any
    exception, and always closes the session.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections; called from the app lifespan on shutdown."""
    await engine.dispose()
