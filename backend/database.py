"""
database.py - SQLAlchemy 2.0 async engine and session factory.

This module owns ALL database connection infrastructure.
Nothing else in the codebase creates engines or sessions directly.

Usage from an HTTP layer (dependency injection):
    from backend.database import get_db
    async def my_route(db: AsyncSession = Depends(get_db)): ...

Usage from jobs and scripts (explicit unit of work):
    from backend.database import session_scope
    async with session_scope() as session: ...
"""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from backend.config import settings


# ---------------------------------------------------------------------------
# Declarative base - ALL ORM models inherit from this
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base.
    All ORM models in backend/models/ inherit from Base.
    Defined here (not in models/) to prevent circular imports in alembic/env.py.
    """
    pass


# ---------------------------------------------------------------------------
# Async engine - one per application lifetime
# ---------------------------------------------------------------------------
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,      # Field values are bound parameters, never inlined in logged SQL
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,       # Discard stale connections before each use
)

# ---------------------------------------------------------------------------
# Session factory - produces AsyncSession instances
# ---------------------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,   # Keep objects usable after commit without re-querying
)


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commits on success, rolls back on any exception.

    The store layer only flushes; committing is always the owner's job.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency-style generator yielding one AsyncSession per request.

    Usage:
        async def route(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with session_scope() as session:
        yield session
