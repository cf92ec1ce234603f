# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Result — two-channel (data, error) return value for the data layer.

Repositories never raise for store or scoping failures; they hand back a
Result whose ``error`` is set. Services decide whether to raise it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from vault_os.core.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    data: Optional[T] = None
    error: Optional[AppError] = None

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: AppError) -> "Result[T]":
        return cls(data=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[T]:
        """Return data, or raise the carried error unchanged."""
        if self.error is not None:
            raise self.error
        return self.data

    def __iter__(self):
        # data, error = await repo.find_by_id(...)
        yield self.data
        yield self.error
