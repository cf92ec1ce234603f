# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
User Service — local user profiles, including the caller's own.
"""

from __future__ import annotations

from typing import List, Optional

from vault_os.core.context import RequestContext
from vault_os.core.errors import Err
from vault_os.domain.dto import UserCreate, UserUpdate
from vault_os.domain.entities import UserEntity
from vault_os.domain.filters import UserFilter
from vault_os.storage.repositories import UserRepository


class UserService:

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    async def get_user(self, user_id: str) -> Optional[UserEntity]:
        return (await self._users.find_by_id(user_id)).unwrap()

    async def get_user_by_email(self, email: str) -> Optional[UserEntity]:
        return (await self._users.find_by_email(email.lower())).unwrap()

    async def get_users_by_ids(self, user_ids: List[str]) -> List[UserEntity]:
        return (await self._users.find_by_ids(user_ids)).unwrap()

    async def create_user(self, request: UserCreate) -> UserEntity:
        if await self.get_user_by_email(request.email) is not None:
            Err.conflict(
                f"User with email {request.email} already exists", {"email": request.email}
            ).raise_()
        actor = RequestContext.try_get_user_id() or request.id
        user = UserEntity(
            id=request.id,
            name=request.name,
            email=request.email,
            tenant_id=request.tenant_id,
            avatar_url=request.avatar_url,
            created_by=actor,
            updated_by=actor,
        )
        return (await self._users.create(user)).unwrap()

    async def list_users(self, filter: Optional[UserFilter] = None) -> List[UserEntity]:
        return (await self._users.find_all(filter)).unwrap()

    async def update_user(self, user_id: str, request: UserUpdate) -> UserEntity:
        existing = await self.get_user(user_id)
        if existing is None:
            Err.not_found("User", user_id).raise_()
        changes = {k: v for k, v in request.changes().items() if v is not None or k != "name"}
        updated = existing.copy_with(**changes, updated_by=RequestContext.try_get_user_id() or user_id)
        return (await self._users.update(updated)).unwrap()

    async def get_current_user(self) -> Optional[UserEntity]:
        user_id = RequestContext.try_get_user_id()
        if not user_id:
            Err.unauthorized("No authenticated user found in context").raise_()
        return await self.get_user(user_id)

    async def update_current_user(self, request: UserUpdate) -> UserEntity:
        user_id = RequestContext.try_get_user_id()
        if not user_id:
            Err.unauthorized("No authenticated user found in context").raise_()
        return await self.update_user(user_id, request)
