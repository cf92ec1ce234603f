# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Auth API — signup (first-time onboarding of an authenticated identity).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vault_os.api.deps import container_dep
from vault_os.api.users import UserResponse
from vault_os.core.container import AppContainer
from vault_os.domain.dto import SignupRequest

router = APIRouter(prefix="/v1/auth", tags=["auth"])


class TenantSummary(BaseModel):
    id: str
    name: str


class SignupResponse(BaseModel):
    user: UserResponse
    tenant: TenantSummary


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(req: SignupRequest, container: AppContainer = Depends(container_dep)):
    """Create the caller's tenant and user profile."""
    result = await container.onboarding_service.signup(req)
    return SignupResponse(
        user=UserResponse.from_entity(result.user),
        tenant=TenantSummary(id=result.tenant.id, name=result.tenant.name),
    )
