# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.
"""Unit tests for domain entities, filters and request DTOs."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from vault_os.core.errors import AppError, ErrorCode
from vault_os.domain.dto import SignupRequest, VaultCreate, VaultUpdate, parse_request
from vault_os.domain.entities import EntityStatus, SortOrder, VaultEntity
from vault_os.domain.filters import UserFilter, VaultFilter
from vault_os.storage.models import UserRow, VaultRow


class TestVaultEntity:
    def test_create(self):
        v = VaultEntity.create(name="Taxes", tenant_id="t1", user_id="u1", color="#fff")
        assert v.id.startswith("vault_")
        assert v.status == EntityStatus.PUBLISHED
        assert v.created_by == "u1" and v.updated_by == "u1"
        assert v.metadata == {}

    def test_immutable_copy_with(self):
        v = VaultEntity.create(name="Taxes", tenant_id="t1", user_id="u1")
        renamed = v.copy_with(name="Receipts")
        assert renamed.name == "Receipts" and v.name == "Taxes"
        assert renamed.id == v.id
        with pytest.raises(dataclasses.FrozenInstanceError):
            v.name = "x"

    def test_row_values_use_meta_column(self):
        v = VaultEntity.create(name="A", tenant_id="t1", user_id="u1", metadata={"k": "v"})
        values = v.to_row_values()
        assert values["meta"] == {"k": "v"}
        assert values["status"] == "published"
        assert "metadata" not in values


class TestFilters:
    def test_defaults_valid(self):
        VaultFilter().validate()
        assert VaultFilter.create_no_limit().is_unlimited

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"limit": 0},
            {"limit": 1001},
            {"offset": -1},
            {"sort": "password"},
        ],
    )
    def test_invalid_pagination(self, kwargs):
        with pytest.raises(AppError) as exc:
            VaultFilter(**kwargs).validate()
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_time_range_order(self):
        now = datetime.now(timezone.utc)
        with pytest.raises(AppError, match="End time"):
            VaultFilter(start_time=now, end_time=now - timedelta(hours=1)).validate()

    def test_excludes_deleted_by_default(self):
        sql = str(select(VaultRow).where(*VaultFilter().build_conditions(VaultRow)))
        assert "vaults.status !=" in sql

    def test_explicit_status(self):
        conditions = VaultFilter(status=EntityStatus.DELETED).build_conditions(VaultRow)
        sql = str(select(VaultRow).where(*conditions).compile(compile_kwargs={"literal_binds": True}))
        assert "vaults.status = 'deleted'" in sql

    def test_vault_conditions_are_and_ed(self):
        f = VaultFilter(vault_ids=["v1", "v2"], name_contains="tax", color="#fff")
        sql = str(select(VaultRow).where(*f.build_conditions(VaultRow)))
        assert " OR " not in sql.upper()
        assert "vaults.id IN" in sql
        assert "vaults.color" in sql

    def test_user_filter(self):
        f = UserFilter(emails=["a@example.com"], tenant_id="t1")
        sql = str(select(UserRow).where(*f.build_conditions(UserRow)))
        assert "users.email IN" in sql
        assert "users.tenant_id" in sql

    def test_ordering(self):
        stmt = VaultFilter(sort="name", order=SortOrder.ASC, limit=5, offset=10).apply_ordering(
            select(VaultRow), VaultRow
        )
        sql = str(stmt)
        assert "ORDER BY vaults.name ASC" in sql
        assert "LIMIT" in sql and "OFFSET" in sql


class TestDTOs:
    def test_vault_create_trims_name(self):
        req = VaultCreate(name="  Taxes  ")
        assert req.name == "Taxes"

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": ""},
            {"name": "   "},
            {"name": "x" * 256},
            {"name": "ok", "description": "d" * 1001},
            {"name": "ok", "color": "red"},
            {"name": "ok", "color": "#12345"},
        ],
    )
    def test_vault_create_rejects(self, payload):
        with pytest.raises(AppError) as exc:
            parse_request(VaultCreate, payload)
        assert exc.value.code == ErrorCode.VALIDATION_ERROR

    def test_hex_colors_accepted(self):
        assert parse_request(VaultCreate, {"name": "a", "color": "#ABC"}).color == "#ABC"
        assert parse_request(VaultCreate, {"name": "a", "color": "#a1b2c3"}).color == "#a1b2c3"

    def test_vault_update_changes_only_sent_fields(self):
        assert VaultUpdate(description="new").changes() == {"description": "new"}

    def test_signup_email(self):
        with pytest.raises(AppError):
            parse_request(SignupRequest, {"token": "t", "email": "not-an-email"})
        req = SignupRequest(token="t", email="Ada@Example.com")
        assert req.email == "ada@example.com"
        assert req.display_name == "ada"
