# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Vault Service — vault use cases on top of the tenant-scoped repository.

Repository errors are raised unchanged; tenant and owner always come from
the request context, never from caller input.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from vault_os.core.context import RequestContext
from vault_os.core.errors import Err
from vault_os.domain.dto import VaultCreate, VaultUpdate
from vault_os.domain.entities import VaultEntity
from vault_os.domain.filters import VaultFilter
from vault_os.storage.repositories import VaultRepository

logger = logging.getLogger("vault.service.vault")

_NON_NULLABLE = ("name", "metadata")


class VaultService:

    def __init__(self, vaults: VaultRepository) -> None:
        self._vaults = vaults

    async def get_vault(self, vault_id: str) -> Optional[VaultEntity]:
        return (await self._vaults.find_by_id(vault_id)).unwrap()

    async def require_vault(self, vault_id: str) -> VaultEntity:
        vault = await self.get_vault(vault_id)
        if vault is None:
            Err.not_found("Vault", vault_id).raise_()
        return vault

    async def create_vault(self, request: VaultCreate) -> VaultEntity:
        tenant_id = RequestContext.try_get_tenant_id()
        user_id = RequestContext.try_get_user_id()
        if not tenant_id or not user_id:
            Err.unauthorized("Tenant and user context required to create a vault").raise_()

        vault = VaultEntity.create(
            name=request.name,
            tenant_id=tenant_id,
            user_id=user_id,
            description=request.description,
            icon_url=request.icon_url,
            color=request.color,
            metadata=request.metadata,
        )
        created = (await self._vaults.create(vault)).unwrap()
        logger.info("Vault %s created", created.id)
        return created

    async def list_vaults(self, filter: Optional[VaultFilter] = None) -> Dict[str, Any]:
        filter = filter or VaultFilter.create_default()
        items: List[VaultEntity] = (await self._vaults.find_all(filter)).unwrap()
        total: int = (await self._vaults.count(filter)).unwrap()
        return {
            "items": items,
            "pagination": {"total": total, "limit": filter.limit, "offset": filter.offset},
        }

    async def update_vault(self, vault_id: str, request: VaultUpdate) -> VaultEntity:
        existing = await self.require_vault(vault_id)
        changes = {
            k: v for k, v in request.changes().items()
            if v is not None or k not in _NON_NULLABLE
        }
        updated = existing.copy_with(**changes, updated_by=RequestContext.try_get_user_id())
        return (await self._vaults.update(updated)).unwrap()

    async def delete_vault(self, vault_id: str) -> None:
        (await self._vaults.delete(vault_id)).unwrap()
        logger.info("Vault %s deleted", vault_id)
