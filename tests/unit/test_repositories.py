# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.
"""Unit tests for repositories on SQLite (tenant isolation, soft delete)."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import TENANT_A, TENANT_B, USER_A, USER_B, in_context, make_record
from vault_os.core.errors import ErrorCode
from vault_os.domain.entities import EntityStatus, TenantEntity, UserEntity, VaultEntity
from vault_os.domain.filters import VaultFilter
from vault_os.storage.models import VaultRow
from vault_os.storage.repositories import ScopePolicy, TenantRepository, UserRepository, VaultRepository


def _vault(name="Taxes", tenant_id=TENANT_A, user_id=USER_A) -> VaultEntity:
    return VaultEntity.create(name=name, tenant_id=tenant_id, user_id=user_id)


class TestTenantIsolation:
    @pytest.mark.asyncio
    async def test_cross_tenant_find_is_indistinguishable_from_missing(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_ONLY)
        created, error = await in_context(make_record(TENANT_B, USER_B), repo.create, _vault(tenant_id=TENANT_B, user_id=USER_B))
        assert error is None

        result = await in_context(make_record(TENANT_A, USER_A), repo.find_by_id, created.id)
        assert result.data is None
        assert result.error is None

        missing = await in_context(make_record(TENANT_A, USER_A), repo.find_by_id, "vault_nope")
        assert (missing.data, missing.error) == (None, None)

    @pytest.mark.asyncio
    async def test_list_and_count_only_see_own_tenant(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_ONLY)
        for i in range(3):
            await repo.create(_vault(name=f"a{i}", tenant_id=TENANT_A))
        await repo.create(_vault(name="b0", tenant_id=TENANT_B, user_id=USER_B))

        items, error = await in_context(make_record(TENANT_A), repo.find_all, VaultFilter(sort="name", order="asc"))
        assert error is None
        assert [v.name for v in items] == ["a0", "a1", "a2"]
        assert all(v.tenant_id == TENANT_A for v in items)

        total, _ = await in_context(make_record(TENANT_A), repo.count, VaultFilter())
        assert total == 3

        # A filter that names another tenant's vault still cannot widen the scope
        b_rows = await in_context(make_record(TENANT_B, USER_B), repo.find_all, None)
        b_id = b_rows.data[0].id
        leaked, _ = await in_context(make_record(TENANT_A), repo.find_all, VaultFilter(vault_ids=[b_id]))
        assert leaked == []

    @pytest.mark.asyncio
    async def test_no_tenant_in_context_is_unauthorized(self, session_factory):
        repo = VaultRepository(session_factory)
        for call in (
            lambda: repo.find_by_id("v1"),
            lambda: repo.find_all(),
            lambda: repo.count(),
            lambda: repo.delete("v1"),
        ):
            result = await in_context(make_record(tenant_id=None), call)
            assert result.data is None
            assert result.error.code == ErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_no_context_at_all_is_unauthorized(self, session_factory):
        repo = VaultRepository(session_factory)
        _, error = await repo.find_by_id("v1")
        assert error.code == ErrorCode.UNAUTHORIZED


class TestOwnerPolicy:
    @pytest.mark.asyncio
    async def test_other_user_in_same_tenant_cannot_see(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_AND_OWNER)
        created, _ = await repo.create(_vault(user_id=USER_A))

        mine = await in_context(make_record(TENANT_A, USER_A), repo.find_by_id, created.id)
        theirs = await in_context(make_record(TENANT_A, USER_B), repo.find_by_id, created.id)
        assert mine.data.id == created.id
        assert (theirs.data, theirs.error) == (None, None)

    @pytest.mark.asyncio
    async def test_tenant_only_shares_within_tenant(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_ONLY)
        created, _ = await repo.create(_vault(user_id=USER_A))
        result = await in_context(make_record(TENANT_A, USER_B), repo.find_by_id, created.id)
        assert result.data.id == created.id

    @pytest.mark.asyncio
    async def test_owner_policy_requires_user(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_AND_OWNER)
        result = await in_context(make_record(TENANT_A, user_id=None), repo.find_all, None)
        assert result.error.code == ErrorCode.UNAUTHORIZED


class TestWrites:
    @pytest.mark.asyncio
    async def test_update_own_vault(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_AND_OWNER)
        created, _ = await repo.create(_vault())
        renamed = created.copy_with(name="Receipts", metadata={"year": "2026"})

        updated, error = await in_context(make_record(), repo.update, renamed)
        assert error is None
        assert updated.name == "Receipts"

        fetched, _ = await in_context(make_record(), repo.find_by_id, created.id)
        assert fetched.name == "Receipts"
        assert fetched.metadata == {"year": "2026"}

    @pytest.mark.asyncio
    async def test_update_foreign_tenant_is_forbidden_and_writes_nothing(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_ONLY)
        created, _ = await repo.create(_vault(tenant_id=TENANT_B, user_id=USER_B))

        _, error = await in_context(make_record(TENANT_A, USER_A), repo.update, created.copy_with(name="pwned"))
        assert error.code == ErrorCode.FORBIDDEN

        still, _ = await in_context(make_record(TENANT_B, USER_B), repo.find_by_id, created.id)
        assert still.name == "Taxes"

    @pytest.mark.asyncio
    async def test_update_retargeted_entity_is_forbidden(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_ONLY)
        created, _ = await repo.create(_vault(tenant_id=TENANT_B, user_id=USER_B))
        # Caller rewrites tenant_id to their own, row belongs to B: no row matches the scope
        disguised = created.copy_with(tenant_id=TENANT_A, name="pwned")
        _, error = await in_context(make_record(TENANT_A, USER_A), repo.update, disguised)
        assert error.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_non_owner_forbidden(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_AND_OWNER)
        created, _ = await repo.create(_vault(user_id=USER_A))
        _, error = await in_context(make_record(TENANT_A, USER_B), repo.update, created.copy_with(name="x"))
        assert error.code == ErrorCode.FORBIDDEN

    @pytest.mark.asyncio
    async def test_soft_delete_round_trip(self, session_factory):
        repo = VaultRepository(session_factory, ScopePolicy.TENANT_AND_OWNER)
        created, _ = await repo.create(_vault())

        _, error = await in_context(make_record(), repo.delete, created.id)
        assert error is None

        gone = await in_context(make_record(), repo.find_by_id, created.id)
        assert (gone.data, gone.error) == (None, None)

        kept = await in_context(make_record(), repo.find_by_id, created.id, True)
        assert kept.data.status == EntityStatus.DELETED
        assert kept.data.updated_by == USER_A

        async with session_factory() as session:
            row = (await session.execute(select(VaultRow).where(VaultRow.id == created.id))).scalar_one()
            assert row.status == "deleted"

        listed, _ = await in_context(make_record(), repo.find_all, None)
        assert listed == []
        deleted_only, _ = await in_context(make_record(), repo.find_all, VaultFilter(status=EntityStatus.DELETED))
        assert [v.id for v in deleted_only] == [created.id]

    @pytest.mark.asyncio
    async def test_delete_twice_is_not_found(self, session_factory):
        repo = VaultRepository(session_factory)
        created, _ = await repo.create(_vault())
        await in_context(make_record(), repo.delete, created.id)
        _, error = await in_context(make_record(), repo.delete, created.id)
        assert error.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_foreign_vault_is_not_found(self, session_factory):
        repo = VaultRepository(session_factory)
        created, _ = await repo.create(_vault(tenant_id=TENANT_B, user_id=USER_B))
        _, error = await in_context(make_record(TENANT_A, USER_A), repo.delete, created.id)
        assert error.code == ErrorCode.NOT_FOUND


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_sqlalchemy_error_wrapped_once(self, session_factory, monkeypatch):
        repo = VaultRepository(session_factory)

        class BrokenSession:
            async def __aenter__(self):
                raise OperationalError("SELECT 1", {}, Exception("could not connect to postgres://secret@db"))

            async def __aexit__(self, *exc):
                return False

        monkeypatch.setattr(repo, "_session_factory", lambda: BrokenSession())
        result = await in_context(make_record(), repo.find_by_id, "vault_1")
        assert result.data is None
        assert result.error.code == ErrorCode.DATABASE_ERROR
        assert result.error.details["operation"] == "find"
        assert result.error.details["entity_id"] == "vault_1"
        assert "postgres://" not in result.error.display_message
        assert "postgres://" not in result.error.internal_error

    @pytest.mark.asyncio
    async def test_filter_validation_returned_as_error(self, session_factory):
        repo = VaultRepository(session_factory)
        result = await in_context(make_record(), repo.find_all, VaultFilter(limit=0))
        assert result.error.code == ErrorCode.VALIDATION_ERROR


class TestUnscopedRepositories:
    @pytest.mark.asyncio
    async def test_user_lookup_across_tenants(self, session_factory):
        users = UserRepository(session_factory)
        await users.create(UserEntity(id=USER_A, name="Ada", email="ada@example.com", tenant_id=TENANT_A))
        await users.create(UserEntity(id=USER_B, name="Bob", email="bob@example.com", tenant_id=TENANT_B))

        by_email, _ = await users.find_by_email("bob@example.com")
        assert by_email.id == USER_B
        many, _ = await users.find_by_ids([USER_A, USER_B])
        assert {u.id for u in many} == {USER_A, USER_B}
        empty, _ = await users.find_by_ids([])
        assert empty == []

    @pytest.mark.asyncio
    async def test_duplicate_email_is_database_error(self, session_factory):
        users = UserRepository(session_factory)
        await users.create(UserEntity(id="u1", name="A", email="dup@example.com"))
        _, error = await users.create(UserEntity(id="u2", name="B", email="dup@example.com"))
        assert error.code == ErrorCode.DATABASE_ERROR
        assert error.details["operation"] == "create"

    @pytest.mark.asyncio
    async def test_tenant_crud(self, session_factory):
        tenants = TenantRepository(session_factory)
        tenant, _ = await tenants.create(TenantEntity.create(name="Acme"))
        fetched, _ = await tenants.find_by_id(tenant.id)
        assert fetched.name == "Acme"
        await tenants.update(fetched.copy_with(description="Widgets"))
        again, _ = await tenants.find_by_id(tenant.id)
        assert again.description == "Widgets"
        total, _ = await tenants.count()
        assert total == 1
