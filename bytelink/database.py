"""Database configuration and session management for the ByteLink store.

This module provides SQLAlchemy async engine setup, session factories,
and schema lifecycle operations. Nothing here is created at import time:
the ServiceManager owns the engine and hands the session factory to the store.

Flow Diagram - Database Lifecycle
=================================
::
    ┌──────────────────┐
    │ create_engine_   │
    │ from_settings()  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ create_session_  │
    │ factory(engine)  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ init_db(engine)  │
    │ create tables    │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ SQLAlchemyLink-  │
    │ Store(factory)   │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ close_db(engine) │
    └──────────────────┘

How to Use
===========
**Step 1 - Build on startup**::
    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)
    await init_db(engine)

**Step 2 - Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- PostgreSQL engines get a sized connection pool with pre-ping.
- SQLite engines (aiosqlite) open every transaction with BEGIN IMMEDIATE, so a
  read-modify-write holds the database write lock from its first SELECT.
- In-memory SQLite databases use a StaticPool so every session sees the same
  data; file databases keep the default pool.
- Sessions do not expire objects on commit.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine_from_settings():  Builds the async engine.
    is_sqlite():  True for SQLite engines.
    create_session_factory():  Builds the async_sessionmaker.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from sqlalchemy import event, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from bytelink.config import Settings

__all__ = ["Base", "create_engine_from_settings", "is_sqlite", "create_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def _create_sqlite_engine(url: str) -> AsyncEngine:
    options = {}
    if make_url(url).database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_async_engine(url, echo=False, connect_args={"check_same_thread": False}, **options)

    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself, see the "begin" listener
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        return _create_sqlite_engine(url)
    return create_async_engine(
        url,
        echo=(settings.APP_ENV == "development"),
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def is_sqlite(engine: AsyncEngine) -> bool:
    return engine.dialect.name == "sqlite"


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # registers the tables on Base.metadata
    import bytelink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
