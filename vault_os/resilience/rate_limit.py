# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Rate Limiter — fixed-window request quota backed by Redis.

Each caller gets ``limit`` requests per ``window`` seconds:
  - Key:    ratelimit:{scope}:{window_start}
  - Count:  INCR, with EXPIRE set on the first hit of a window
  - Over:   RATE_LIMIT_EXCEEDED carrying ``retry_after`` (seconds)

Redis being unavailable lets the request through with a warning.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from vault_os.core.context import RequestContext
from vault_os.core.errors import Err

logger = logging.getLogger("vault.rate_limit")


def rate_limit_scope(client_host: Optional[str] = None) -> str:
    """Tenant+user when known, else the client address."""
    tenant_id = RequestContext.try_get_tenant_id()
    user_id = RequestContext.try_get_user_id()
    if user_id:
        return f"{tenant_id or '-'}:{user_id}"
    return f"anon:{client_host or 'unknown'}"


class RateLimiter:

    def __init__(self, redis: aioredis.Redis, limit: int, window: int = 60, enabled: bool = True) -> None:
        self._redis = redis
        self._limit = limit
        self._window = window
        self._enabled = enabled

    async def hit(self, scope: str, now: Optional[float] = None) -> int:
        """
        Count one request for ``scope``.

        Returns the remaining quota; raises RATE_LIMIT_EXCEEDED when spent.
        """
        if not self._enabled:
            return self._limit

        now = time.time() if now is None else now
        window_start = int(now // self._window) * self._window
        key = f"ratelimit:{scope}:{window_start}"
        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, self._window)
            if count > self._limit:
                ttl = await self._redis.ttl(key)
                retry_after = max(1, ttl if ttl and ttl > 0 else window_start + self._window - int(now))
                logger.info("Rate limit exceeded for %s", scope)
                Err.rate_limit("Too many requests, slow down", retry_after=retry_after).raise_()
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return self._limit
        return self._limit - count
