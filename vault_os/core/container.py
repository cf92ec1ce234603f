# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
App Container — holds repositories, services and clients.

Built once at startup (``init_container``) and read by API routes, the
gateway middleware and server actions through ``get_container``.
"""

from __future__ import annotations

from typing import Optional

import httpx
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vault_os.auth.boundary import ActionRunner
from vault_os.auth.identity import IdentityProvider, TenantLookupCache
from vault_os.core.config import VaultSettings, settings as default_settings
from vault_os.resilience.rate_limit import RateLimiter
from vault_os.services.onboarding import OnboardingService
from vault_os.services.user import UserService
from vault_os.services.vault import VaultService
from vault_os.storage.repositories import ScopePolicy, TenantRepository, UserRepository, VaultRepository


class AppContainer:
    """
    Every long-lived component, wired together.
    Created once at startup, used by all API handlers and actions.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: aioredis.Redis,
        settings: VaultSettings,
        provider: IdentityProvider,
    ) -> None:
        self.settings = settings
        self.redis = redis
        self.session_factory = session_factory

        # Repositories
        self.tenants = TenantRepository(session_factory)
        self.users = UserRepository(session_factory)
        self.vaults = VaultRepository(session_factory, ScopePolicy(settings.VAULT_SCOPE_POLICY))

        # Identity
        self.identity_provider = provider
        self.tenant_cache = TenantLookupCache(redis, ttl=settings.IDENTITY_CACHE_TTL)
        self.action_runner = ActionRunner(provider, self.users, self.tenant_cache)

        # Services
        self.vault_service = VaultService(self.vaults)
        self.user_service = UserService(self.users)
        self.onboarding_service = OnboardingService(self.tenants, self.users, provider, self.tenant_cache)

        self.rate_limiter = RateLimiter(
            redis,
            limit=settings.RATE_LIMIT_PER_MINUTE,
            window=60,
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    async def aclose(self) -> None:
        await self.identity_provider.aclose()


def build_container(
    session_factory: async_sessionmaker[AsyncSession],
    redis: aioredis.Redis,
    settings: Optional[VaultSettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContainer:
    settings = settings or default_settings
    provider = IdentityProvider(
        settings.AUTH_PROVIDER_URL,
        settings.AUTH_PROVIDER_ANON_KEY,
        client=http_client,
    )
    return AppContainer(session_factory, redis, settings, provider)


_container: Optional[AppContainer] = None


def init_container(
    session_factory: async_sessionmaker[AsyncSession],
    redis: aioredis.Redis,
    settings: Optional[VaultSettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContainer:
    global _container
    _container = build_container(session_factory, redis, settings, http_client)
    return _container


def get_container() -> AppContainer:
    if _container is None:
        raise RuntimeError("AppContainer not initialized. Call init_container() first.")
    return _container


def reset_container() -> None:
    global _container
    _container = None
