"""Async SQLAlchemy engine + session dependencies.

Defaults to a private in-memory SQLite database; a PostgreSQL URL works too
(no durability guarantees are made either way).
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.settings import settings
from src.db.locking import store_lock

# Convert postgresql:// to postgresql+asyncpg:// for async support
_db_url = settings.DATABASE_URL
if _db_url.startswith("postgresql://"):
    _db_url = _db_url.replace("postgresql://", "postgresql+asyncpg://", 1)

_is_sqlite = _db_url.startswith("sqlite")
_is_memory = _is_sqlite and (_db_url.rstrip("/").endswith("sqlite+aiosqlite:") or ":memory:" in _db_url)

_engine_kwargs: dict = {
    "echo": False,
    "future": True,
}

if _is_memory:
    # One shared connection, otherwise every checkout sees an empty database
    _engine_kwargs.update({
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    })
elif not _is_sqlite:
    _engine_kwargs.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    })

engine = create_async_engine(_db_url, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Dependency for FastAPI: yields an async session."""
    async with async_session() as session:
        yield session


async def read_session(
    session: AsyncSession = Depends(get_session),
) -> AsyncIterator[AsyncSession]:
    """Session for read-only handlers; shares the store with other readers."""
    async with store_lock.reader():
        yield session


async def write_session(
    session: AsyncSession = Depends(get_session),
) -> AsyncIterator[AsyncSession]:
    """Session for mutating handlers; holds the store exclusively."""
    async with store_lock.writer():
        yield session


@asynccontextmanager
async def read_scope() -> AsyncIterator[AsyncSession]:
    """Short read outside a request's own session dependency."""
    async with async_session() as session, store_lock.reader():
        yield session


@asynccontextmanager
async def write_scope() -> AsyncIterator[AsyncSession]:
    """Exclusive unit of work opened after slow I/O has finished."""
    async with async_session() as session, store_lock.writer():
        yield session
