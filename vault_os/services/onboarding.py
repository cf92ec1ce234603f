# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Onboarding Service — first signup creates the caller's tenant and profile.

The caller is identified by the active context when the gateway already
resolved them, otherwise by the signup token. After signup the new tenant
id is written into the active context so the rest of the request is scoped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from vault_os.auth.identity import IdentityProvider, TenantLookupCache
from vault_os.core.context import ContextKey, RequestContext
from vault_os.core.errors import Err
from vault_os.domain.dto import SignupRequest
from vault_os.domain.entities import TenantEntity, UserEntity
from vault_os.storage.repositories import TenantRepository, UserRepository

logger = logging.getLogger("vault.service.onboarding")


@dataclass(frozen=True)
class SignupResult:
    user: UserEntity
    tenant: TenantEntity


class OnboardingService:

    def __init__(
        self,
        tenants: TenantRepository,
        users: UserRepository,
        provider: IdentityProvider,
        cache: Optional[TenantLookupCache] = None,
    ) -> None:
        self._tenants = tenants
        self._users = users
        self._provider = provider
        self._cache = cache

    async def _resolve_subject(self, token: str) -> Tuple[str, Optional[str]]:
        """User id and verified email of the caller."""
        user_id = RequestContext.try_get_user_id()
        if user_id:
            return user_id, RequestContext.try_get_user_email()
        identity = await self._provider.get_user(token)
        if identity is None:
            Err.unauthorized("Invalid or expired signup token").raise_()
        return identity.id, identity.email

    async def signup(self, request: SignupRequest) -> SignupResult:
        user_id, verified_email = await self._resolve_subject(request.token)
        # The profile email must be the one the identity provider vouches for
        if verified_email and verified_email.lower() != request.email:
            Err.forbidden("Signup email does not match the authenticated identity").raise_()
        email = (verified_email or request.email).lower()

        if (await self._users.find_by_email(email)).unwrap() is not None:
            Err.conflict("User with this email already exists", {"email": email}).raise_()
        if (await self._users.find_by_id(user_id, include_deleted=True)).unwrap() is not None:
            Err.conflict("User is already onboarded", {"user_id": user_id}).raise_()

        tenant = TenantEntity.create(
            name=request.tenant_name or f"{request.display_name}'s workspace",
            created_by=user_id,
        )
        tenant = (await self._tenants.create(tenant)).unwrap()

        user = UserEntity(
            id=user_id,
            name=request.display_name,
            email=email,
            tenant_id=tenant.id,
            created_by=user_id,
            updated_by=user_id,
        )
        user = (await self._users.create(user)).unwrap()

        if self._cache is not None:
            await self._cache.put(user_id, tenant.id)
        if RequestContext.has_context():
            RequestContext.set(ContextKey.USER_ID, user_id)
            RequestContext.set(ContextKey.USER_EMAIL, user.email)
            RequestContext.set(ContextKey.TENANT_ID, tenant.id)

        logger.info("Onboarded user %s into tenant %s", user_id, tenant.id)
        return SignupResult(user=user, tenant=tenant)
