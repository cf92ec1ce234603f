# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Repositories — CRUD over the ORM tables, returning Result(data, error).

All methods create their own session and commit within it. Store failures
never escape as exceptions: they come back wrapped once as DATABASE_ERROR.

TenantScopedRepository reads the tenant (and, per policy, the owner) from
the request context on every call and AND-s it into every statement. A row
outside the caller's scope is indistinguishable from a missing row.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vault_os.core.context import RequestContext
from vault_os.core.errors import AppError, Err
from vault_os.core.result import Result
from vault_os.domain.entities import BaseEntity, EntityStatus, TenantEntity, UserEntity, VaultEntity
from vault_os.domain.filters import BaseFilter, TenantFilter, UserFilter, VaultFilter
from vault_os.storage.models import TenantRow, UserRow, VaultRow

logger = logging.getLogger("vault.repository")

E = TypeVar("E", bound=BaseEntity)

# Columns never rewritten by update()
_IMMUTABLE = ("id", "created_at", "created_by")


class ScopePolicy(str, Enum):
    TENANT_ONLY = "tenant_only"
    TENANT_AND_OWNER = "tenant_and_owner"


class BaseRepository(Generic[E]):
    """Unscoped CRUD for one table/entity pair."""

    model: Any = None
    entity_cls: Type[BaseEntity] = BaseEntity
    filter_cls: Type[BaseFilter] = BaseFilter
    resource: str = "Entity"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ── Scope hooks (no-ops here) ───────────────────────────────

    def _scope_conditions(self) -> List[Any]:
        return []

    def _check_write(self, entity: E) -> None:
        return None

    # ── CRUD ────────────────────────────────────────────────────

    async def create(self, entity: E) -> Result[E]:
        try:
            async with self._session_factory() as session:
                row = self.model(**entity.to_row_values())
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return Result.success(self.entity_cls.from_row(row))
        except SQLAlchemyError as exc:
            return self._db_failure("create", exc, entity.id)

    async def find_by_id(self, entity_id: str, include_deleted: bool = False) -> Result[E]:
        try:
            conditions = [self.model.id == entity_id, *self._scope_conditions()]
            if not include_deleted:
                conditions.append(self.model.status != EntityStatus.DELETED.value)
            async with self._session_factory() as session:
                result = await session.execute(select(self.model).where(*conditions))
                row = result.scalar_one_or_none()
                return Result.success(self.entity_cls.from_row(row) if row is not None else None)
        except AppError as err:
            return Result.failure(err)
        except SQLAlchemyError as exc:
            return self._db_failure("find", exc, entity_id)

    async def find_all(self, filter: Optional[BaseFilter] = None) -> Result[List[E]]:
        filter = filter or self.filter_cls.create_default()
        try:
            filter.validate()
            conditions = [*self._scope_conditions(), *filter.build_conditions(self.model)]
            stmt = filter.apply_ordering(select(self.model).where(*conditions), self.model)
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return Result.success([self.entity_cls.from_row(row) for row in result.scalars().all()])
        except AppError as err:
            return Result.failure(err)
        except SQLAlchemyError as exc:
            return self._db_failure("list", exc)

    async def count(self, filter: Optional[BaseFilter] = None) -> Result[int]:
        filter = filter or self.filter_cls.create_default()
        try:
            filter.validate()
            conditions = [*self._scope_conditions(), *filter.build_conditions(self.model)]
            stmt = select(func.count()).select_from(self.model).where(*conditions)
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return Result.success(int(result.scalar_one()))
        except AppError as err:
            return Result.failure(err)
        except SQLAlchemyError as exc:
            return self._db_failure("count", exc)

    async def update(self, entity: E) -> Result[E]:
        try:
            self._check_write(entity)
            now = datetime.now(timezone.utc)
            values = {k: v for k, v in entity.to_row_values().items() if k not in _IMMUTABLE}
            values["updated_at"] = now
            stmt = (
                update(self.model)
                .where(
                    self.model.id == entity.id,
                    self.model.status != EntityStatus.DELETED.value,
                    *self._scope_conditions(),
                )
                .values({getattr(self.model, k): v for k, v in values.items()})
                .execution_options(synchronize_session=False)
            )
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    return Result.failure(Err.not_found(self.resource, entity.id).build())
                await session.commit()
            return Result.success(entity.copy_with(updated_at=now))
        except AppError as err:
            return Result.failure(err)
        except SQLAlchemyError as exc:
            return self._db_failure("update", exc, entity.id)

    async def delete(self, entity_id: str) -> Result[None]:
        """Soft delete: the row stays, with ``status = 'deleted'``."""
        try:
            values: Dict[str, Any] = {
                "status": EntityStatus.DELETED.value,
                "updated_at": datetime.now(timezone.utc),
            }
            actor = RequestContext.try_get_user_id()
            if actor:
                values["updated_by"] = actor
            stmt = (
                update(self.model)
                .where(
                    self.model.id == entity_id,
                    self.model.status != EntityStatus.DELETED.value,
                    *self._scope_conditions(),
                )
                .values({getattr(self.model, k): v for k, v in values.items()})
                .execution_options(synchronize_session=False)
            )
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    return Result.failure(Err.not_found(self.resource, entity_id).build())
                await session.commit()
            return Result.success(None)
        except AppError as err:
            return Result.failure(err)
        except SQLAlchemyError as exc:
            return self._db_failure("delete", exc, entity_id)

    # ── Internal ────────────────────────────────────────────────

    def _db_failure(self, operation: str, exc: SQLAlchemyError, entity_id: Optional[str] = None) -> Result:
        details: Dict[str, Any] = {"operation": operation, "resource": self.resource.lower()}
        if entity_id:
            details["entity_id"] = entity_id
        logger.error("%s %s failed: %s", self.resource, operation, type(exc).__name__)
        error = (
            Err.database(f"Failed to {operation} {self.resource.lower()}", exc)
            .with_message(f"{type(exc).__name__} during {self.resource.lower()} {operation}")
            .with_details(details)
            .build()
        )
        return Result.failure(error)


class TenantScopedRepository(BaseRepository[E]):
    """
    Repository whose every read and write is confined to the context tenant.

    ``policy`` is fixed per repository instance:
      - TENANT_ONLY:      tenant_id must match the context tenant
      - TENANT_AND_OWNER: additionally created_by must match the context user
    """

    tenant_column = "tenant_id"
    owner_column = "created_by"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: ScopePolicy = ScopePolicy.TENANT_ONLY,
    ) -> None:
        super().__init__(session_factory)
        self.policy = ScopePolicy(policy)

    def _require_scope(self):
        tenant_id = RequestContext.try_get_tenant_id()
        if not tenant_id:
            Err.unauthorized("Tenant context required").raise_()
        user_id = RequestContext.try_get_user_id()
        if self.policy is ScopePolicy.TENANT_AND_OWNER and not user_id:
            Err.unauthorized("User context required").raise_()
        return tenant_id, user_id

    def _scope_conditions(self) -> List[Any]:
        tenant_id, user_id = self._require_scope()
        conditions = [getattr(self.model, self.tenant_column) == tenant_id]
        if self.policy is ScopePolicy.TENANT_AND_OWNER:
            conditions.append(getattr(self.model, self.owner_column) == user_id)
        return conditions

    def _check_write(self, entity: E) -> None:
        tenant_id, user_id = self._require_scope()
        if getattr(entity, self.tenant_column) != tenant_id:
            logger.warning("Cross-tenant write rejected on %s %s", self.resource, entity.id)
            Err.forbidden(f"Cannot modify {self.resource.lower()} from another tenant").raise_()
        if self.policy is ScopePolicy.TENANT_AND_OWNER and getattr(entity, self.owner_column) != user_id:
            logger.warning("Non-owner write rejected on %s %s", self.resource, entity.id)
            Err.forbidden(f"Cannot modify another user's {self.resource.lower()}").raise_()


# ── Concrete repositories ───────────────────────────────────

class VaultRepository(TenantScopedRepository[VaultEntity]):
    model = VaultRow
    entity_cls = VaultEntity
    filter_cls = VaultFilter
    resource = "Vault"


class TenantRepository(BaseRepository[TenantEntity]):
    model = TenantRow
    entity_cls = TenantEntity
    filter_cls = TenantFilter
    resource = "Tenant"


class UserRepository(BaseRepository[UserEntity]):
    """Users are looked up across tenants (identity fallback, signup)."""

    model = UserRow
    entity_cls = UserEntity
    filter_cls = UserFilter
    resource = "User"

    async def find_by_email(self, email: str) -> Result[UserEntity]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UserRow).where(
                        UserRow.email == email,
                        UserRow.status != EntityStatus.DELETED.value,
                    )
                )
                row = result.scalar_one_or_none()
                return Result.success(UserEntity.from_row(row) if row is not None else None)
        except SQLAlchemyError as exc:
            return self._db_failure("find", exc)

    async def find_by_ids(self, user_ids: List[str]) -> Result[List[UserEntity]]:
        if not user_ids:
            return Result.success([])
        return await self.find_all(UserFilter(user_ids=list(user_ids), limit=None))
