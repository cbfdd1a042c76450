"""Database configuration module.

The connection pool is built explicitly at application start-up and passed to
every data access call. Nothing here opens a connection at import time.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from billing_dashboard.settings import Settings

Base = declarative_base()


class ConnectionPool:
    """Bounded pool of database connections.

    Callers borrow one connection per logical operation and must hand it back.
    When every connection is checked out, ``acquire`` waits until one is
    released (or ``pool_timeout`` elapses).
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionPool":
        engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_pre_ping=True,
        )
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def acquire(self) -> AsyncConnection:
        """Check a connection out of the pool."""
        return await self._engine.connect()

    async def release(self, conn: AsyncConnection) -> None:
        """Return a connection to the pool."""
        await conn.close()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection for the duration of the ``async with`` block."""
        conn = await self.acquire()
        try:
            yield conn
        finally:
            await self.release(conn)

    async def dispose(self) -> None:
        """Close every pooled connection. Called at shutdown."""
        await self._engine.dispose()


def get_pool(request: Request) -> ConnectionPool:
    """Dependency for the application's connection pool."""
    return request.app.state.pool


# Faults raised while borrowing a connection or running a statement
DB_ERRORS = (SQLAlchemyError, OSError)
