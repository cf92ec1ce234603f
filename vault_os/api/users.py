# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
User API — the caller's own profile.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vault_os.api.deps import container_dep, require_user
from vault_os.core.container import AppContainer
from vault_os.core.errors import Err
from vault_os.domain.dto import UserUpdate
from vault_os.domain.entities import EntityStatus, UserEntity

router = APIRouter(prefix="/v1/users", tags=["users"], dependencies=[Depends(require_user)])


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    tenant_id: Optional[str] = None
    avatar_url: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, user: UserEntity) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            tenant_id=user.tenant_id,
            avatar_url=user.avatar_url,
            status=EntityStatus(user.status).value,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


@router.get("/me", response_model=UserResponse)
async def get_me(container: AppContainer = Depends(container_dep)):
    user = await container.user_service.get_current_user()
    if user is None:
        Err.not_found("User").with_hint("User profile not found. Complete signup first.").raise_()
    return UserResponse.from_entity(user)


@router.put("/me", response_model=UserResponse)
async def update_me(req: UserUpdate, container: AppContainer = Depends(container_dep)):
    user = await container.user_service.update_current_user(req)
    return UserResponse.from_entity(user)
