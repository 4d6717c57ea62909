"""
Ebook Shelf Backend — Database Session Management
===================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   `Database` owns an async engine with connection pooling and a session
       factory. One instance is created in the application lifespan and kept
       on `app.state`; the session dependency auto-commits on success and
       auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at startup; sessions are created per-request.

Architecture Decision:
    The engine is not a module-level global. It is built from settings when
    the app starts and injected into requests through `app.state`, so tests
    can hand the app any engine (or override the dependency entirely).
"""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with a single metadata
    object (used by Alembic for migrations).
    """
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine described by settings.

    Pool sizing only applies to server databases; SQLite (used in local
    development and tests) manages its own connections.
    """
    url = make_url(settings.database_url)
    options = {"echo": settings.log_level == "DEBUG"}
    if not url.get_backend_name().startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


class Database:
    """
    Holds the engine and session factory for one application instance.

    expire_on_commit=False: attributes stay readable after commit, which the
    record store relies on when converting rows to response models.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine_from_settings(settings))

    async def ping(self) -> None:
        """Runs SELECT 1; raises whatever the driver raises when unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Closes all pooled connections."""
        await self.engine.dispose()


def get_database(request: Request) -> Optional[Database]:
    return getattr(request.app.state, "database", None)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's session factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Raises:
        RuntimeError if the app was started without a database (startup
        should have failed before any request arrives).
    """
    database = get_database(request)
    if database is None:
        raise RuntimeError("Database is not initialized")

    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
