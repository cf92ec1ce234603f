# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Vault Actions — vault operations for callers outside the HTTP pipeline
(jobs, CLIs, server-rendered pages).

Each action sets up its own request context from the caller's access token
(or reuses the active one) and returns a Result instead of raising.

    vaults = await list_vaults(access_token, {"limit": 10, "name_contains": "tax"})
    if vaults.error: ...
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from vault_os.core.container import get_container
from vault_os.core.errors import AppError, Err, log_error
from vault_os.core.result import Result
from vault_os.domain.dto import VaultCreate, VaultUpdate, parse_request
from vault_os.domain.entities import VaultEntity
from vault_os.domain.filters import VaultFilter

logger = logging.getLogger("vault.actions")

T = TypeVar("T")

_FILTER_FIELDS = frozenset(f.name for f in fields(VaultFilter))


async def _run(name: str, access_token: Optional[str], body: Callable[[], Awaitable[T]]) -> Result[T]:
    container = get_container()
    try:
        return Result.success(await container.action_runner.run(body, access_token))
    except AppError as err:
        log_error(err, context=f"action:{name}")
        return Result.failure(err)


def _build_filter(data: Optional[Dict[str, Any]]) -> Optional[VaultFilter]:
    if not data:
        return None
    unknown = sorted(set(data) - _FILTER_FIELDS)
    if unknown:
        Err.validation("Unknown vault filter fields", {"fields": unknown}).raise_()
    return VaultFilter(**data)


async def list_vaults(access_token: Optional[str], filter: Optional[Dict[str, Any]] = None) -> Result[Dict[str, Any]]:
    service = get_container().vault_service
    return await _run("list_vaults", access_token, lambda: service.list_vaults(_build_filter(filter)))


async def get_vault(access_token: Optional[str], vault_id: str) -> Result[Optional[VaultEntity]]:
    service = get_container().vault_service
    return await _run("get_vault", access_token, lambda: service.get_vault(vault_id))


async def create_vault(access_token: Optional[str], payload: Dict[str, Any]) -> Result[VaultEntity]:
    service = get_container().vault_service

    async def body() -> VaultEntity:
        return await service.create_vault(parse_request(VaultCreate, payload))

    return await _run("create_vault", access_token, body)


async def update_vault(access_token: Optional[str], vault_id: str, payload: Dict[str, Any]) -> Result[VaultEntity]:
    service = get_container().vault_service

    async def body() -> VaultEntity:
        return await service.update_vault(vault_id, parse_request(VaultUpdate, payload))

    return await _run("update_vault", access_token, body)


async def delete_vault(access_token: Optional[str], vault_id: str) -> Result[None]:
    service = get_container().vault_service
    return await _run("delete_vault", access_token, lambda: service.delete_vault(vault_id))
