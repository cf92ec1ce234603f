# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Request Context — ambient, per-logical-request identity store.

One ContextRecord is bound to the current asyncio task tree through a
ContextVar. Everything awaited from inside ``RequestContext.run`` (and every
task spawned there, since asyncio copies the context on task creation)
observes the same record without it being passed around.

    record = ContextRecord.new("/api/v1/vaults", "GET", tenant_id="tenant_A")
    await RequestContext.run(record, handler)

Strict getters fail fast (NoContextError / ContextKeyError); the ``try_*``
variants return None for code paths that must tolerate a missing context.
"""

from __future__ import annotations

import inspect
import time
import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional


class ContextKey(str, Enum):
    REQUEST_ID = "request_id"
    REQUEST_PATH = "request_path"
    REQUEST_METHOD = "request_method"
    REQUEST_START_TIME = "request_start_time"
    USER_ID = "user_id"
    USER_EMAIL = "user_email"
    TENANT_ID = "tenant_id"


class NoContextError(RuntimeError):
    def __init__(self, message: str = "No context available"):
        super().__init__(message)


class ContextKeyError(KeyError):
    def __init__(self, key: str, message: str = "Context key not found"):
        self.key = key
        self.message = f"{message}: {key}"
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass
class ContextRecord:
    """Ambient state of one logical request. Never persisted."""

    request_id: str
    request_path: str
    request_method: str
    request_start_time: int  # epoch milliseconds
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    tenant_id: Optional[str] = None

    @classmethod
    def new(
        cls,
        path: str,
        method: str,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> "ContextRecord":
        return cls(
            request_id=str(uuid.uuid4()),
            request_path=path,
            request_method=method,
            request_start_time=int(time.time() * 1000),
            user_id=user_id or None,
            user_email=user_email or None,
            tenant_id=tenant_id or None,
        )


_FIELD_NAMES = frozenset(f.name for f in fields(ContextRecord))

_current: ContextVar[Optional[ContextRecord]] = ContextVar("vault_request_context", default=None)


def _key_name(key: Any) -> str:
    return key.value if isinstance(key, ContextKey) else str(key)


class RequestContext:
    """Static accessors over the active ContextRecord."""

    # ── Core ────────────────────────────────────────────────────

    @staticmethod
    def run(record: ContextRecord, body: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Execute ``body`` with ``record`` as the active context.

        Coroutine functions, and plain callables that return an awaitable
        (lambdas, partials), get an awaitable back; the record stays bound for
        the whole await, including every suspension point inside it.
        """
        if inspect.iscoroutinefunction(body):
            return _run_async(record, body, *args, **kwargs)
        token = _current.set(record)
        try:
            result = body(*args, **kwargs)
        finally:
            _current.reset(token)
        if inspect.isawaitable(result):
            return _await_in(record, result)
        return result

    @staticmethod
    def has_context() -> bool:
        return _current.get() is not None

    @staticmethod
    def get_context() -> ContextRecord:
        record = _current.get()
        if record is None:
            raise NoContextError()
        return record

    @classmethod
    def get(cls, key: Any) -> Any:
        record = cls.get_context()
        name = _key_name(key)
        if name not in _FIELD_NAMES:
            raise ContextKeyError(name)
        value = getattr(record, name)
        if value is None:
            raise ContextKeyError(name)
        return value

    @staticmethod
    def try_get(key: Any) -> Any:
        record = _current.get()
        if record is None:
            return None
        return getattr(record, _key_name(key), None)

    @classmethod
    def set(cls, key: Any, value: Any) -> None:
        """Mutate the active record in place."""
        record = cls.get_context()
        name = _key_name(key)
        if name not in _FIELD_NAMES:
            raise ContextKeyError(name, "Unknown context key")
        setattr(record, name, value)

    # ── Derived children ────────────────────────────────────────

    @classmethod
    def with_values(cls, values: Dict[str, Any], body: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``body`` in a copy of the active record updated with ``values``."""
        parent = _current.get()
        if parent is None:
            raise NoContextError("Cannot create child context without parent context")
        return cls.run(replace(parent, **values), body, *args, **kwargs)

    @classmethod
    def try_with_values(cls, values: Dict[str, Any], body: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        parent = _current.get()
        if parent is None:
            return body(*args, **kwargs)
        return cls.run(replace(parent, **values), body, *args, **kwargs)

    # ── Identity helpers ────────────────────────────────────────

    @classmethod
    def get_user_id(cls) -> str:
        return cls._require(ContextKey.USER_ID, "User ID not found in context")

    @classmethod
    def try_get_user_id(cls) -> Optional[str]:
        return cls.try_get(ContextKey.USER_ID)

    @classmethod
    def get_user_email(cls) -> str:
        return cls._require(ContextKey.USER_EMAIL, "User email not found in context")

    @classmethod
    def try_get_user_email(cls) -> Optional[str]:
        return cls.try_get(ContextKey.USER_EMAIL)

    @classmethod
    def get_tenant_id(cls) -> str:
        return cls._require(ContextKey.TENANT_ID, "Tenant ID not found in context")

    @classmethod
    def try_get_tenant_id(cls) -> Optional[str]:
        return cls.try_get(ContextKey.TENANT_ID)

    @classmethod
    def has_user(cls) -> bool:
        return bool(cls.try_get_user_id() and cls.try_get_user_email())

    @classmethod
    def has_tenant(cls) -> bool:
        return bool(cls.try_get_tenant_id())

    # ── Request metadata ────────────────────────────────────────

    @classmethod
    def get_request_id(cls) -> str:
        return cls.get(ContextKey.REQUEST_ID)

    @classmethod
    def get_request_path(cls) -> str:
        return cls.get(ContextKey.REQUEST_PATH)

    @classmethod
    def get_request_method(cls) -> str:
        return cls.get(ContextKey.REQUEST_METHOD)

    @classmethod
    def get_request_start_time(cls) -> int:
        return cls.get(ContextKey.REQUEST_START_TIME)

    @classmethod
    def get_request_duration(cls) -> int:
        """Milliseconds elapsed since the request started."""
        return int(time.time() * 1000) - cls.get_request_start_time()

    @classmethod
    def get_all(cls) -> ContextRecord:
        return cls.get_context()

    @staticmethod
    def to_dict() -> Dict[str, Any]:
        record = _current.get()
        if record is None:
            return {}
        return asdict(record)

    # ── Internal ────────────────────────────────────────────────

    @classmethod
    def _require(cls, key: ContextKey, message: str) -> str:
        record = cls.get_context()
        value = getattr(record, key.value)
        if not value:
            raise ContextKeyError(key.value, message)
        return value


async def _await_in(record: ContextRecord, awaitable: Awaitable[Any]) -> Any:
    token = _current.set(record)
    try:
        return await awaitable
    finally:
        _current.reset(token)


async def _run_async(record: ContextRecord, body: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    token = _current.set(record)
    try:
        return await body(*args, **kwargs)
    finally:
        _current.reset(token)
