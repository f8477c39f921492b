from __future__ import annotations

"""Async database engine and session helpers."""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from config import get_settings

from .models import Base


@lru_cache()
def get_engine(url: str | None = None) -> AsyncEngine:
    """Return the shared engine for ``url`` (defaults to ``database_url``)."""

    url = url or get_settings().database_url
    if url.endswith(":memory:") or url.rstrip("/").endswith("sqlite+aiosqlite:"):
        # An in-memory database only survives on a single shared connection.
        return create_async_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    return create_async_engine(url)


def get_sessionmaker(engine: AsyncEngine | None = None) -> async_sessionmaker:
    return async_sessionmaker(
        engine or get_engine(), expire_on_commit=False, class_=AsyncSession
    )


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` for the duration of a request."""

    async with get_sessionmaker()() as session:
        yield session


async def init_models(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables."""

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = ["get_engine", "get_session", "get_sessionmaker", "init_models"]
