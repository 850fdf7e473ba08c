"""Async SQLAlchemy engine and session factory helpers for the user directory."""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Seconds a SQLite writer waits on a competing key redemption before failing.
SQLITE_BUSY_TIMEOUT_SECONDS = 30.0


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Create a reusable async session factory for the user directory database.

    SQLite serializes writers with a file lock, so concurrent conditional
    updates wait for the lock instead of failing with `database is locked`.
    """

    connect_args: dict[str, Any] = {}
    if make_url(database_url).get_backend_name() == "sqlite":
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT_SECONDS

    engine = create_async_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    return async_sessionmaker(engine, expire_on_commit=False)
