# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
ORM Models — PostgreSQL table definitions for VaultOS.

Tables:
  - tenants: Organizational boundary; owns users and vaults
  - users:   Local profile of an identity-provider user (id = provider subject)
  - vaults:  Tenant-owned organizer containers

All tables share the base columns: id, status, created_by, updated_by,
created_at, updated_at. ``status = 'deleted'`` is a soft-delete marker.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from vault_os.storage.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseColumns:
    id = Column(String(64), primary_key=True)
    status = Column(String(16), nullable=False, default="published", index=True)
    created_by = Column(String(64), nullable=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# ── Tenants ─────────────────────────────────────────────────

class TenantRow(BaseColumns, Base):
    __tablename__ = "tenants"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Tenant {self.id} status={self.status}>"


# ── Users ───────────────────────────────────────────────────

class UserRow(BaseColumns, Base):
    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(320), nullable=False, unique=True)
    tenant_id = Column(String(64), ForeignKey("tenants.id"), nullable=True, index=True)
    avatar_url = Column(Text, nullable=True)

    def __repr__(self):
        return f"<User {self.id} tenant={self.tenant_id}>"


# ── Vaults ──────────────────────────────────────────────────

class VaultRow(BaseColumns, Base):
    __tablename__ = "vaults"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tenant_id = Column(String(64), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    icon_url = Column(Text, nullable=True)
    color = Column(String(16), nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSONType, nullable=False, default=dict)

    def __repr__(self):
        return f"<Vault {self.id} tenant={self.tenant_id}>"
