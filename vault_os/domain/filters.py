# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Query Filters — caller-supplied narrowing for list/count operations.

A filter only ever emits a list of column predicates that the repository
AND-s together with its mandatory scoping conditions. There is no way to
express a top-level OR, so a filter can narrow results but never widen
them past the tenant/owner scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import Select

from vault_os.core.errors import Err
from vault_os.domain.entities import EntityStatus, SortOrder

DEFAULT_LIMIT = 50
MAX_LIMIT = 1000

_SORTABLE = ("created_at", "updated_at", "name")


@dataclass
class BaseFilter:
    # Pagination
    limit: Optional[int] = DEFAULT_LIMIT
    offset: int = 0
    # Status (None = everything except deleted)
    status: Optional[EntityStatus] = None
    # Sorting
    sort: str = "created_at"
    order: SortOrder = SortOrder.DESC
    # Time range on created_at
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def is_unlimited(self) -> bool:
        return not self.limit

    def validate(self) -> None:
        if self.limit is not None and not (1 <= self.limit <= MAX_LIMIT):
            Err.validation(
                f"Limit must be between 1 and {MAX_LIMIT}", {"field": "limit", "value": self.limit}
            ).raise_()
        if self.offset < 0:
            Err.validation("Offset must be non-negative", {"field": "offset", "value": self.offset}).raise_()
        if SortOrder(self.order) not in (SortOrder.ASC, SortOrder.DESC):
            Err.validation("Order must be either asc or desc", {"field": "order"}).raise_()
        if self.sort not in _SORTABLE:
            Err.validation(
                f"Sort must be one of {', '.join(_SORTABLE)}", {"field": "sort", "value": self.sort}
            ).raise_()
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            Err.validation("End time must be after start time", {"field": "end_time"}).raise_()

    def build_base_conditions(self, model: Any) -> List[Any]:
        conditions: List[Any] = []
        if self.status is not None:
            conditions.append(model.status == EntityStatus(self.status).value)
        else:
            conditions.append(model.status != EntityStatus.DELETED.value)
        if self.start_time is not None:
            conditions.append(model.created_at >= self.start_time)
        if self.end_time is not None:
            conditions.append(model.created_at <= self.end_time)
        return conditions

    def build_conditions(self, model: Any) -> List[Any]:
        return self.build_base_conditions(model)

    def apply_ordering(self, stmt: Select, model: Any) -> Select:
        column = getattr(model, self.sort)
        stmt = stmt.order_by(column.asc() if SortOrder(self.order) == SortOrder.ASC else column.desc())
        if self.is_unlimited:
            return stmt.offset(self.offset)
        return stmt.limit(self.limit).offset(self.offset)

    @classmethod
    def create_default(cls):
        return cls()

    @classmethod
    def create_no_limit(cls):
        return cls(limit=None)


@dataclass
class VaultFilter(BaseFilter):
    vault_ids: List[str] = field(default_factory=list)
    name_contains: Optional[str] = None
    description_contains: Optional[str] = None
    color: Optional[str] = None

    def build_conditions(self, model: Any) -> List[Any]:
        conditions = self.build_base_conditions(model)
        if self.vault_ids:
            conditions.append(model.id.in_(self.vault_ids))
        if self.name_contains:
            conditions.append(model.name.ilike(f"%{self.name_contains}%"))
        if self.description_contains:
            conditions.append(model.description.ilike(f"%{self.description_contains}%"))
        if self.color:
            conditions.append(model.color == self.color)
        return conditions


@dataclass
class TenantFilter(BaseFilter):
    tenant_ids: List[str] = field(default_factory=list)
    name_contains: Optional[str] = None

    def build_conditions(self, model: Any) -> List[Any]:
        conditions = self.build_base_conditions(model)
        if self.tenant_ids:
            conditions.append(model.id.in_(self.tenant_ids))
        if self.name_contains:
            conditions.append(model.name.ilike(f"%{self.name_contains}%"))
        return conditions


@dataclass
class UserFilter(BaseFilter):
    user_ids: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    name_contains: Optional[str] = None
    tenant_id: Optional[str] = None

    def build_conditions(self, model: Any) -> List[Any]:
        conditions = self.build_base_conditions(model)
        if self.user_ids:
            conditions.append(model.id.in_(self.user_ids))
        if self.emails:
            conditions.append(model.email.in_(self.emails))
        if self.name_contains:
            conditions.append(model.name.ilike(f"%{self.name_contains}%"))
        if self.tenant_id:
            conditions.append(model.tenant_id == self.tenant_id)
        return conditions
