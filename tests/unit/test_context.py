# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.
"""Unit tests for the request context store."""

import asyncio
import functools

import pytest

from vault_os.core.context import (
    ContextKey,
    ContextKeyError,
    ContextRecord,
    NoContextError,
    RequestContext,
)


def _record(**kw) -> ContextRecord:
    return ContextRecord.new("/api/v1/vaults", "GET", **kw)


class TestNoContext:
    def test_strict_getters_raise(self):
        with pytest.raises(NoContextError):
            RequestContext.get_user_id()
        with pytest.raises(NoContextError):
            RequestContext.get_context()

    def test_try_getters_return_none(self):
        assert RequestContext.try_get_user_id() is None
        assert RequestContext.try_get_tenant_id() is None
        assert RequestContext.try_get(ContextKey.REQUEST_ID) is None
        assert RequestContext.has_context() is False
        assert RequestContext.to_dict() == {}

    def test_set_without_context_raises(self):
        with pytest.raises(NoContextError):
            RequestContext.set(ContextKey.TENANT_ID, "t1")

    def test_with_values_requires_parent(self):
        with pytest.raises(NoContextError, match="parent"):
            RequestContext.with_values({"tenant_id": "t"}, lambda: None)

    def test_try_with_values_runs_plainly(self):
        assert RequestContext.try_with_values({"tenant_id": "t"}, lambda: 42) == 42


class TestRecord:
    def test_new_generates_request_metadata(self):
        r1 = _record()
        r2 = _record()
        assert r1.request_id != r2.request_id
        assert r1.request_path == "/api/v1/vaults"
        assert r1.request_method == "GET"
        assert r1.request_start_time > 0

    def test_blank_identity_is_absent(self):
        r = _record(user_id="", user_email="", tenant_id="")
        assert r.user_id is None and r.user_email is None and r.tenant_id is None


class TestSyncRun:
    def test_values_visible_inside(self):
        record = _record(user_id="u1", user_email="u1@example.com", tenant_id="t1")

        def body():
            return (
                RequestContext.get_user_id(),
                RequestContext.get_tenant_id(),
                RequestContext.has_user(),
                RequestContext.has_tenant(),
            )

        assert RequestContext.run(record, body) == ("u1", "t1", True, True)
        assert RequestContext.has_context() is False

    def test_missing_key_raises_key_error(self):
        record = _record()

        def body():
            with pytest.raises(ContextKeyError) as exc:
                RequestContext.get_user_id()
            assert "User ID not found in context" in str(exc.value)
            with pytest.raises(ContextKeyError):
                RequestContext.get(ContextKey.TENANT_ID)
            return RequestContext.has_user()

        assert RequestContext.run(record, body) is False

    def test_set_mutates_in_place(self):
        record = _record(user_id="u1")

        def body():
            RequestContext.set(ContextKey.TENANT_ID, "t9")
            return RequestContext.get_tenant_id()

        assert RequestContext.run(record, body) == "t9"
        assert record.tenant_id == "t9"

    def test_set_unknown_key(self):
        def body():
            with pytest.raises(ContextKeyError, match="Unknown context key"):
                RequestContext.set("favourite_color", "blue")

        RequestContext.run(_record(), body)

    def test_with_values_derives_child(self):
        parent = _record(user_id="u1", tenant_id="t1")

        def body():
            child_tenant = RequestContext.with_values({"tenant_id": "t2"}, RequestContext.get_tenant_id)
            return child_tenant, RequestContext.get_tenant_id()

        assert RequestContext.run(parent, body) == ("t2", "t1")

    def test_to_dict(self):
        record = _record(user_id="u1", tenant_id="t1")
        data = RequestContext.run(record, RequestContext.to_dict)
        assert data["user_id"] == "u1"
        assert data["tenant_id"] == "t1"
        assert data["request_id"] == record.request_id

    def test_get_all_returns_active_record(self):
        record = _record(user_id="u1")
        assert RequestContext.run(record, RequestContext.get_all) is record


class TestAsyncPropagation:
    @pytest.mark.asyncio
    async def test_survives_suspension_points(self):
        record = _record(user_id="u1", tenant_id="t1")

        async def body():
            seen = [RequestContext.get_tenant_id()]
            await asyncio.sleep(0)
            seen.append(RequestContext.get_tenant_id())
            await asyncio.sleep(0.01)
            seen.append(RequestContext.get_tenant_id())
            return seen

        assert await RequestContext.run(record, body) == ["t1", "t1", "t1"]
        assert RequestContext.has_context() is False

    @pytest.mark.asyncio
    async def test_spawned_tasks_inherit(self):
        record = _record(user_id="u1", tenant_id="t1")

        async def child():
            await asyncio.sleep(0)
            return RequestContext.get_user_id()

        async def body():
            return await asyncio.gather(child(), asyncio.create_task(child()))

        assert await RequestContext.run(record, body) == ["u1", "u1"]

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine_keeps_record(self):
        record = _record(user_id="u1", tenant_id="t1")

        async def read_tenant():
            await asyncio.sleep(0)
            return RequestContext.try_get_tenant_id()

        assert await RequestContext.run(record, lambda: read_tenant()) == "t1"
        assert RequestContext.has_context() is False

    @pytest.mark.asyncio
    async def test_partial_and_async_callable_keep_record(self):
        record = _record(user_id="u1", tenant_id="t1")

        async def read(key):
            return RequestContext.try_get(key)

        class Reader:
            async def __call__(self):
                return RequestContext.try_get_user_id()

        assert await RequestContext.run(record, functools.partial(read, "tenant_id")) == "t1"
        assert await RequestContext.run(record, Reader()) == "u1"

    @pytest.mark.asyncio
    async def test_with_values_lambda_sees_child(self):
        parent = _record(user_id="u1", tenant_id="t1")

        async def read_tenant():
            return RequestContext.get_tenant_id()

        def body():
            return RequestContext.with_values({"tenant_id": "t2"}, lambda: read_tenant())

        assert await RequestContext.run(parent, body) == "t2"

    @pytest.mark.asyncio
    async def test_concurrent_requests_isolated(self):
        async def handler(expected: str):
            for _ in range(5):
                await asyncio.sleep(0)
                assert RequestContext.get_tenant_id() == expected
            return RequestContext.get_tenant_id()

        async def request(tenant: str):
            return await RequestContext.run(_record(user_id=f"u_{tenant}", tenant_id=tenant), handler, tenant)

        results = await asyncio.gather(*(request(f"t{i}") for i in range(20)))
        assert results == [f"t{i}" for i in range(20)]

    @pytest.mark.asyncio
    async def test_request_duration(self):
        async def body():
            await asyncio.sleep(0.02)
            return RequestContext.get_request_duration()

        assert await RequestContext.run(_record(), body) >= 10
