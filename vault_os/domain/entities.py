# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Domain Entities — immutable value objects for Tenant, User and Vault.

Mutation is always copy-with-updates:

    renamed = vault.copy_with(name="Taxes", updated_by=user_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from vault_os.core.ids import IdPrefix, generate_id_with_prefix


class EntityStatus(str, Enum):
    PUBLISHED = "published"
    ARCHIVED = "archived"
    DELETED = "deleted"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class BaseEntity:
    id: str
    status: EntityStatus = EntityStatus.PUBLISHED
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    def copy_with(self, **updates: Any):
        return replace(self, **updates)

    @property
    def is_deleted(self) -> bool:
        return self.status == EntityStatus.DELETED

    def _base_values(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": EntityStatus(self.status).value,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def _base_from_row(row: Any) -> Dict[str, Any]:
        return {
            "id": row.id,
            "status": EntityStatus(row.status),
            "created_by": row.created_by,
            "updated_by": row.updated_by,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }


@dataclass(frozen=True, kw_only=True)
class TenantEntity(BaseEntity):
    name: str
    description: Optional[str] = None

    @classmethod
    def create(
        cls,
        name: str,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> "TenantEntity":
        return cls(
            id=generate_id_with_prefix(IdPrefix.TENANT),
            name=name,
            description=description,
            created_by=created_by,
            updated_by=created_by,
        )

    @classmethod
    def from_row(cls, row: Any) -> "TenantEntity":
        return cls(**cls._base_from_row(row), name=row.name, description=row.description)

    def to_row_values(self) -> Dict[str, Any]:
        return {**self._base_values(), "name": self.name, "description": self.description}


@dataclass(frozen=True, kw_only=True)
class UserEntity(BaseEntity):
    """``id`` is the identity provider's subject id, not generated locally."""

    name: str
    email: str
    tenant_id: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "UserEntity":
        return cls(
            **cls._base_from_row(row),
            name=row.name,
            email=row.email,
            tenant_id=row.tenant_id,
            avatar_url=row.avatar_url,
        )

    def to_row_values(self) -> Dict[str, Any]:
        return {
            **self._base_values(),
            "name": self.name,
            "email": self.email,
            "tenant_id": self.tenant_id,
            "avatar_url": self.avatar_url,
        }


@dataclass(frozen=True, kw_only=True)
class VaultEntity(BaseEntity):
    name: str
    tenant_id: str
    user_id: str
    description: Optional[str] = None
    icon_url: Optional[str] = None
    color: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        tenant_id: str,
        user_id: str,
        description: Optional[str] = None,
        icon_url: Optional[str] = None,
        color: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> "VaultEntity":
        return cls(
            id=generate_id_with_prefix(IdPrefix.VAULT),
            name=name,
            tenant_id=tenant_id,
            user_id=user_id,
            description=description,
            icon_url=icon_url,
            color=color,
            metadata=dict(metadata or {}),
            created_by=user_id,
            updated_by=user_id,
        )

    @classmethod
    def from_row(cls, row: Any) -> "VaultEntity":
        return cls(
            **cls._base_from_row(row),
            name=row.name,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            description=row.description,
            icon_url=row.icon_url,
            color=row.color,
            metadata=dict(row.meta or {}),
        )

    def to_row_values(self) -> Dict[str, Any]:
        return {
            **self._base_values(),
            "name": self.name,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "description": self.description,
            "icon_url": self.icon_url,
            "color": self.color,
            "meta": dict(self.metadata),
        }
