# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Redis Connection — shared async client for the rate limiter and the
tenant lookup cache.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import BusyLoadingError, ConnectionError, RedisError, TimeoutError
from redis.retry import Retry

from vault_os.core.config import settings

logger = logging.getLogger("vault.redis")

_client: Optional[aioredis.Redis] = None

_RETRY = Retry(ExponentialBackoff(cap=1, base=0.05), retries=2)


def get_redis() -> aioredis.Redis:
    """Return the process-wide client, creating it from REDIS_URL on first use."""
    global _client
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=20,
            health_check_interval=30,
            retry=_RETRY,
            retry_on_error=[ConnectionError, TimeoutError, BusyLoadingError],
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    return _client


async def ping_redis(client: Optional[aioredis.Redis] = None) -> bool:
    """Health check; False instead of raising when Redis is unreachable."""
    try:
        return bool(await (client or get_redis()).ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def inject_redis_for_test(client: aioredis.Redis) -> None:
    """Swap in a fakeredis instance."""
    global _client
    _client = client
