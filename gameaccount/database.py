"""
Database engine, session factory, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - create_engine_from_settings(): async engine for DATABASE_URL
  - create_session_factory(): factory for AsyncSession instances
  - Base: declarative base class that all ORM models inherit from
  - init_db(): create all tables (development and tests only)

Nothing here is a process-wide global: callers build an engine and a session
factory once and hand the factory to a SqlStorageGateway, which every
Account then receives explicitly.

Architecture note:
  We use async SQLAlchemy (with aiosqlite for SQLite). When migrating to
  PostgreSQL, only the DATABASE_URL needs to change (asyncpg driver).
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gameaccount.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def create_engine_from_settings(url: str | None = None, **kwargs) -> AsyncEngine:
    """
    Create the async engine.

    echo=True in debug mode logs all SQL statements.
    """
    return create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.DEBUG,
        **kwargs,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False prevents lazy-load errors after commit - accessing
    # attributes on a committed object would otherwise trigger a synchronous
    # DB call, which fails in async context.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine, reset: bool = False) -> None:
    """
    Create all tables if they don't exist.

    A convenience for development and tests; production deployments manage
    the schema with migrations.
    """
    # Register every model on Base.metadata before create_all
    import gameaccount.models  # noqa: F401

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
