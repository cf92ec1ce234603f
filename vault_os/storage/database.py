# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Database — one async engine and session factory per process.

Repositories receive the session factory and open one session per
operation; nothing else in VaultOS touches the engine directly.

    await init_db()                        # fail fast if the DB is unreachable
    factory = get_session_factory()
    async with factory() as session: ...
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from vault_os.core.config import settings

logger = logging.getLogger("vault.database")


class Base(DeclarativeBase):
    """Declarative base for the tenants/users/vaults tables."""


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings for server databases; SQLite keeps its own pool."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


def _bind(engine: AsyncEngine) -> None:
    global _engine, _session_factory
    _engine = engine
    # Entities are built from rows after commit, so rows must not expire
    _session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    if _engine is None:
        url = database_url or settings.DATABASE_URL
        _bind(create_async_engine(url, **engine_options(url)))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        get_engine()
    return _session_factory


async def init_db(database_url: Optional[str] = None) -> None:
    """Create the engine and verify the database answers."""
    engine = get_engine(database_url)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database reachable (%s)", engine.dialect.name)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def create_all_tables() -> None:
    """Create every table registered on Base.metadata (dev/bootstrap)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def override_engine_for_test(engine: AsyncEngine) -> None:
    """Bind the process to a caller-built engine (tests use SQLite in-memory)."""
    _bind(engine)
