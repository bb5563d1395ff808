"""
db/session.py
-------------
Async SQLAlchemy engine and session factory.

Design decisions:
  - One process-wide AsyncEngine, created lazily on first use and reused by
    every request; dispose_engine() drains it at shutdown. Nothing connects
    at import time, so tests can swap get_db without a database driver.
  - Connection pool sized for typical SaaS workloads:
      pool_size=10, max_overflow=20 → max 30 concurrent DB connections.
  - pool_pre_ping=True: validates connections before checkout to handle
    stale connections after DB restarts or idle timeouts.
  - expire_on_commit=False: avoids lazy-load errors after commit in async
    context (attributes are already loaded, no implicit SELECT needed).
"""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storefront.core.config import settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def connect_args_for(url: str) -> dict:
    """Driver options; asyncpg sessions run in UTC so date() buckets match UTC ranges."""
    if url.startswith("postgresql+asyncpg"):
        return {"server_settings": {"timezone": "UTC"}}
    return {}


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.DATABASE_URL,
            connect_args=connect_args_for(settings.DATABASE_URL),
            echo=settings.DEBUG,          # Log SQL in development
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,             # Recycle connections every hour
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a database session.
    The session is committed when the request finishes cleanly,
    and rolled back on exceptions.

    Usage:
        @router.get("/example")
        async def handler(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
