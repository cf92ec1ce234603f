# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Identity — who is calling, and which tenant they belong to.

The auth provider (GoTrue-compatible, ``GET /auth/v1/user``) turns an access
token into an Identity. The tenant comes from the identity metadata
(``user_metadata.tenant_id`` first, then ``app_metadata.tenant_id``); when
neither carries one, the persisted User row is consulted instead.

That fallback lookup never raises. A store or cache failure degrades to
"no tenant", which downstream scoped repositories reject as Unauthorized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from vault_os.storage.repositories import UserRepository

logger = logging.getLogger("vault.identity")

_CACHE_PREFIX = "vault:tenant_of:"


@dataclass(frozen=True)
class Identity:
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    app_metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Identity":
        return cls(
            id=str(payload["id"]),
            email=payload.get("email") or None,
            user_metadata=dict(payload.get("user_metadata") or {}),
            app_metadata=dict(payload.get("app_metadata") or {}),
        )


def extract_tenant_id(identity: Optional[Identity]) -> Optional[str]:
    if identity is None:
        return None
    return identity.user_metadata.get("tenant_id") or identity.app_metadata.get("tenant_id") or None


class IdentityProvider:
    """
    Thin async client over the auth provider's user endpoint.

    Usage:
        provider = IdentityProvider("http://localhost:54321", anon_key)
        identity = await provider.get_user(access_token)   # None if invalid
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        self._anon_key = anon_key
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def get_user(self, access_token: Optional[str]) -> Optional[Identity]:
        if not access_token:
            return None
        headers = {"Authorization": f"Bearer {access_token}"}
        if self._anon_key:
            headers["apikey"] = self._anon_key
        try:
            resp = await self._client.get("/auth/v1/user", headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Auth provider unreachable: %s", type(exc).__name__)
            return None

        if resp.status_code != 200:
            logger.info("Access token rejected by auth provider (HTTP %d)", resp.status_code)
            return None
        try:
            return Identity.from_payload(resp.json())
        except (ValueError, KeyError, TypeError):
            logger.warning("Malformed user payload from auth provider")
            return None

    async def aclose(self) -> None:
        await self._client.aclose()


class TenantLookupCache:
    """Positive user→tenant lookups, cached in Redis for ``ttl`` seconds."""

    def __init__(self, redis: aioredis.Redis, ttl: int = 300) -> None:
        self._redis = redis
        self._ttl = ttl

    async def get(self, user_id: str) -> Optional[str]:
        try:
            return await self._redis.get(f"{_CACHE_PREFIX}{user_id}")
        except RedisError as exc:
            logger.warning("Tenant cache read failed: %s", exc)
            return None

    async def put(self, user_id: str, tenant_id: str) -> None:
        try:
            await self._redis.set(f"{_CACHE_PREFIX}{user_id}", tenant_id, ex=self._ttl)
        except RedisError as exc:
            logger.warning("Tenant cache write failed: %s", exc)

    async def invalidate(self, user_id: str) -> None:
        try:
            await self._redis.delete(f"{_CACHE_PREFIX}{user_id}")
        except RedisError as exc:
            logger.warning("Tenant cache invalidate failed: %s", exc)


async def lookup_tenant_id(
    user_id: str,
    users: UserRepository,
    cache: Optional[TenantLookupCache] = None,
) -> Optional[str]:
    """Tenant of the persisted User ``user_id``, or None. Never raises."""
    try:
        if cache is not None:
            cached = await cache.get(user_id)
            if cached:
                return cached

        user, error = await users.find_by_id(user_id)
        if error is not None:
            logger.warning("Tenant fallback lookup failed for user %s: %s", user_id, error.code.value)
            return None
        if user is None or not user.tenant_id:
            return None

        if cache is not None:
            await cache.put(user_id, user.tenant_id)
        return user.tenant_id
    except Exception:
        logger.exception("Tenant fallback lookup crashed for user %s", user_id)
        return None


async def resolve_tenant_id(
    identity: Optional[Identity],
    users: UserRepository,
    cache: Optional[TenantLookupCache] = None,
) -> Optional[str]:
    """Metadata tenant first, then the persisted-User fallback."""
    if identity is None:
        return None
    return extract_tenant_id(identity) or await lookup_tenant_id(identity.id, users, cache)
