# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Context Boundary — where a logical request gets its ContextRecord.

Two entry points share the same rules:
  - HTTP requests: identity comes from the ``x-user-id`` / ``x-user-email`` /
    ``x-tenant-id`` headers set by the upstream auth step
    (see ``RequestContextMiddleware``).
  - Server actions (``ActionRunner``): code invoked outside the HTTP pipeline
    resolves identity itself from the caller's access token.

Either way: a fresh request id, identity-metadata tenant first with the
persisted-User fallback, anonymous callers still get a record, and an
already-active context is reused rather than replaced.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from vault_os.auth.identity import IdentityProvider, TenantLookupCache, lookup_tenant_id, resolve_tenant_id
from vault_os.core.context import ContextRecord, RequestContext
from vault_os.storage.repositories import UserRepository

logger = logging.getLogger("vault.boundary")

T = TypeVar("T")

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
TENANT_ID_HEADER = "x-tenant-id"
IDENTITY_HEADERS = (USER_ID_HEADER, USER_EMAIL_HEADER, TENANT_ID_HEADER)

ACTION_METHOD = "SERVER_ACTION"
ACTION_PATH = "/server-action"


async def record_from_headers(
    path: str,
    method: str,
    headers: Mapping[str, str],
    users: Optional[UserRepository] = None,
    cache: Optional[TenantLookupCache] = None,
) -> ContextRecord:
    """Build the record for an HTTP request from its identity headers."""
    record = ContextRecord.new(
        path,
        method,
        user_id=headers.get(USER_ID_HEADER),
        user_email=headers.get(USER_EMAIL_HEADER),
        tenant_id=headers.get(TENANT_ID_HEADER),
    )
    if record.user_id and not record.tenant_id and users is not None:
        record.tenant_id = await lookup_tenant_id(record.user_id, users, cache)
        if not record.tenant_id:
            logger.warning("No tenant resolved for user %s", record.user_id)
    return record


async def run_in_context(record: ContextRecord, handler: Callable[[], Awaitable[T]]) -> T:
    """Run ``handler`` under ``record``, or under the active context if there is one."""
    if RequestContext.has_context():
        return await handler()

    async def _body() -> T:
        return await handler()

    return await RequestContext.run(record, _body)


class ActionRunner:
    """
    Context setup for server-invoked actions.

    Usage:
        runner = ActionRunner(provider, users, cache)
        vaults = await runner.run(lambda: service.list_vaults(), access_token)
    """

    def __init__(
        self,
        provider: IdentityProvider,
        users: UserRepository,
        cache: Optional[TenantLookupCache] = None,
    ) -> None:
        self._provider = provider
        self._users = users
        self._cache = cache

    async def run(self, handler: Callable[[], Awaitable[T]], access_token: Optional[str] = None) -> T:
        if RequestContext.has_context():
            return await handler()
        record = await self.build_record(access_token)
        return await run_in_context(record, handler)

    async def build_record(self, access_token: Optional[str]) -> ContextRecord:
        identity = await self._provider.get_user(access_token)
        if identity is None:
            return ContextRecord.new(ACTION_PATH, ACTION_METHOD)

        tenant_id = await resolve_tenant_id(identity, self._users, self._cache)
        if not tenant_id:
            # Scoped operations will reject this caller as Unauthorized
            logger.warning("Server action for user %s has no tenant", identity.id)
        return ContextRecord.new(
            ACTION_PATH,
            ACTION_METHOD,
            user_id=identity.id,
            user_email=identity.email,
            tenant_id=tenant_id,
        )


def identity_headers(user_id: str, email: Optional[str], tenant_id: Optional[str]) -> dict:
    """Header set the gateway forwards for an authenticated caller."""
    headers: dict[str, Any] = {USER_ID_HEADER: user_id, USER_EMAIL_HEADER: email or ""}
    if tenant_id:
        headers[TENANT_ID_HEADER] = tenant_id
    return headers
