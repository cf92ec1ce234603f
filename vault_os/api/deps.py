# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
API Dependencies — FastAPI dependency injection.
"""

from __future__ import annotations

from fastapi import Depends, Request

from vault_os.core.container import AppContainer, get_container
from vault_os.core.context import RequestContext
from vault_os.core.errors import Err
from vault_os.resilience.rate_limit import rate_limit_scope


async def container_dep() -> AppContainer:
    return get_container()


async def require_user() -> str:
    """The caller's user id; 401 when the request is anonymous."""
    user_id = RequestContext.try_get_user_id()
    if not user_id:
        Err.unauthorized("Authentication required").raise_()
    return user_id


async def require_tenant(user_id: str = Depends(require_user)) -> str:
    """The caller's tenant id; 401 when the user has no tenant yet."""
    tenant_id = RequestContext.try_get_tenant_id()
    if not tenant_id:
        Err.unauthorized("Tenant context required").raise_()
    return tenant_id


async def enforce_rate_limit(
    request: Request,
    container: AppContainer = Depends(container_dep),
) -> None:
    client_host = request.client.host if request.client else None
    await container.rate_limiter.hit(rate_limit_scope(client_host))
