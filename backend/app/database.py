"""
TaskManager Backend — Database Engine & Session Management
===========================================================

What:  Async SQLAlchemy engine, session factory and declarative base.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling. Sessions are NOT
       handed out per request here: every write goes through the
       TransactionCoordinator (app.services.transaction), which owns the
       begin/commit/abort boundary.
Who:   Used by the transaction coordinator, the health route and Alembic.
When:  Engine is created at module import; sessions are created per unit of work.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite (local runs, tests) uses SQLAlchemy's default pool for the
    driver and none of the sizing options.
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    Why a function: the application builds one engine from settings at
    import time; the test-suite builds a throwaway engine per test.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)

    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=echo,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory with consistent configuration.

    expire_on_commit=False: results handed back from a committed unit of
    work stay readable without another round-trip.
    """
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# ── Engine & Session Factory ──────────────────────────────────────────────
# Echo SQL only in DEBUG mode (SQL logging is noisy)
engine = build_engine(settings.database_url, echo=settings.log_level == "DEBUG")
async_session_factory = build_session_factory(engine)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared
    metadata used by Alembic and by the test-suite's create_all().
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def check_database(bind: Optional[AsyncEngine] = None) -> bool:
    """
    What:  Lightweight connectivity check (SELECT 1).
    Who:   TransactionCoordinator.ping() (health check route).
    """
    async with (bind or engine).connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
