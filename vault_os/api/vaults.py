# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Vault API — CRUD over the caller's vaults.

Scope is never taken from the request body: tenant and owner come from the
request context, and the repository enforces them on every statement.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from vault_os.api.deps import container_dep, enforce_rate_limit, require_tenant
from vault_os.core.container import AppContainer
from vault_os.core.errors import Err
from vault_os.domain.dto import VaultCreate, VaultUpdate
from vault_os.domain.entities import EntityStatus, SortOrder, VaultEntity
from vault_os.domain.filters import VaultFilter

logger = logging.getLogger("vault.api.vaults")

router = APIRouter(
    prefix="/v1/vaults",
    tags=["vaults"],
    dependencies=[Depends(require_tenant), Depends(enforce_rate_limit)],
)


# ── Response Models ─────────────────────────────────────────

class VaultResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    color: Optional[str] = None
    metadata: Dict[str, str] = {}
    tenant_id: str
    user_id: str
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, vault: VaultEntity) -> "VaultResponse":
        return cls(
            id=vault.id,
            name=vault.name,
            description=vault.description,
            icon_url=vault.icon_url,
            color=vault.color,
            metadata=vault.metadata,
            tenant_id=vault.tenant_id,
            user_id=vault.user_id,
            status=EntityStatus(vault.status).value,
            created_at=vault.created_at,
            updated_at=vault.updated_at,
        )


class Pagination(BaseModel):
    total: int
    limit: Optional[int] = None
    offset: int


class VaultListResponse(BaseModel):
    items: List[VaultResponse]
    pagination: Pagination


# ── Endpoints ───────────────────────────────────────────────

@router.get("", response_model=VaultListResponse)
async def list_vaults(
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    status: Optional[EntityStatus] = Query(None),
    sort: str = Query("created_at"),
    order: SortOrder = Query(SortOrder.DESC),
    vault_ids: Optional[str] = Query(None, description="Comma-separated vault ids"),
    name_contains: Optional[str] = Query(None),
    description_contains: Optional[str] = Query(None),
    color: Optional[str] = Query(None),
    start_time: Optional[datetime] = Query(None),
    end_time: Optional[datetime] = Query(None),
    container: AppContainer = Depends(container_dep),
):
    """List vaults in the caller's scope, newest first by default."""
    if limit is None:
        limit = container.settings.DEFAULT_PAGE_LIMIT
    if limit > container.settings.MAX_PAGE_LIMIT:
        Err.validation(
            f"Limit must not exceed {container.settings.MAX_PAGE_LIMIT}", {"field": "limit"}
        ).raise_()

    vault_filter = VaultFilter(
        limit=limit,
        offset=offset,
        status=status,
        sort=sort,
        order=order,
        vault_ids=[v for v in (vault_ids or "").split(",") if v],
        name_contains=name_contains,
        description_contains=description_contains,
        color=color,
        start_time=start_time,
        end_time=end_time,
    )
    result = await container.vault_service.list_vaults(vault_filter)
    return VaultListResponse(
        items=[VaultResponse.from_entity(v) for v in result["items"]],
        pagination=Pagination(**result["pagination"]),
    )


@router.post("", response_model=VaultResponse, status_code=201)
async def create_vault(req: VaultCreate, container: AppContainer = Depends(container_dep)):
    vault = await container.vault_service.create_vault(req)
    return VaultResponse.from_entity(vault)


@router.get("/{vault_id}", response_model=VaultResponse)
async def get_vault(vault_id: str, container: AppContainer = Depends(container_dep)):
    vault = await container.vault_service.require_vault(vault_id)
    return VaultResponse.from_entity(vault)


@router.put("/{vault_id}", response_model=VaultResponse)
async def update_vault(vault_id: str, req: VaultUpdate, container: AppContainer = Depends(container_dep)):
    vault = await container.vault_service.update_vault(vault_id, req)
    return VaultResponse.from_entity(vault)


@router.delete("/{vault_id}", status_code=204)
async def delete_vault(vault_id: str, container: AppContainer = Depends(container_dep)):
    await container.vault_service.delete_vault(vault_id)
    return Response(status_code=204)
