# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Shared test fixtures for all VaultOS tests.
"""

from typing import Any, Dict

import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from vault_os.core.config import VaultSettings
from vault_os.core.container import init_container, reset_container
from vault_os.core.context import ContextRecord, RequestContext
from vault_os.storage import models  # noqa: F401
from vault_os.storage.database import Base, get_session_factory, override_engine_for_test
from vault_os.storage.redis_client import inject_redis_for_test

TENANT_A = "tenant_A"
TENANT_B = "tenant_B"
USER_A = "user_a"
USER_B = "user_b"


@pytest.fixture
def mock_redis():
    """Provide a FakeRedis async instance wired in as the process client."""
    r = fakeredis.aioredis.FakeRedis(decode_responses=True)
    inject_redis_for_test(r)
    return r


@pytest_asyncio.fixture
async def session_factory():
    """SQLite in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    override_engine_for_test(engine)
    yield get_session_factory()
    await engine.dispose()


@pytest.fixture
def test_settings() -> VaultSettings:
    return VaultSettings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        AUTH_PROVIDER_URL="http://auth.test",
        AUTH_PROVIDER_ANON_KEY="anon-key",
        RATE_LIMIT_PER_MINUTE=1000,
        VAULT_SCOPE_POLICY="tenant_and_owner",
        VAULT_ENV="dev",
        # Header-driven tests act as the trusted upstream proxy
        AUTH_RESOLVE_IDENTITY=False,
    )


@pytest.fixture
def auth_users() -> Dict[str, Dict[str, Any]]:
    """access token → auth provider user payload. Tests add entries."""
    return {}


@pytest.fixture
def auth_transport(auth_users):
    """Fake GoTrue ``/auth/v1/user`` endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path != "/auth/v1/user":
            return httpx.Response(404)
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        payload = auth_users.get(token) if scheme == "Bearer" else None
        if payload is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def container(session_factory, mock_redis, test_settings, auth_transport):
    client = httpx.AsyncClient(transport=auth_transport, base_url="http://auth.test")
    c = init_container(session_factory, mock_redis, test_settings, http_client=client)
    yield c
    await c.aclose()
    reset_container()


def make_record(tenant_id=TENANT_A, user_id=USER_A, email="a@example.com") -> ContextRecord:
    return ContextRecord.new("/test", "TEST", user_id=user_id, user_email=email, tenant_id=tenant_id)


async def in_context(record: ContextRecord, fn, *args, **kwargs):
    """Await ``fn(*args, **kwargs)`` with ``record`` as the active context."""

    async def body():
        return await fn(*args, **kwargs)

    return await RequestContext.run(record, body)
