# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Observability API — health check.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vault_os.api.deps import container_dep
from vault_os.core.container import AppContainer
from vault_os.storage.redis_client import ping_redis

logger = logging.getLogger("vault.api.health")

router = APIRouter(tags=["observability"])


async def _database_ok(container: AppContainer) -> bool:
    try:
        async with container.session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed: %s", type(exc).__name__)
        return False


@router.get("/health")
async def health_check(container: AppContainer = Depends(container_dep)):
    """Liveness plus component status."""
    database = await _database_ok(container)
    redis = await ping_redis(container.redis)
    return {
        "status": "ok" if database and redis else "degraded",
        "version": "0.1.0",
        "postgres": "connected" if database else "unavailable",
        "redis": "connected" if redis else "unavailable",
    }
