# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Request DTOs — validated input shared by HTTP routes and server actions.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from vault_os.core.errors import Err

M = TypeVar("M", bound=BaseModel)

HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"


def parse_request(model: Type[M], data: Dict[str, Any]) -> M:
    """Validate ``data`` outside FastAPI; failures become VALIDATION_ERROR."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = [".".join(str(p) for p in e["loc"]) for e in exc.errors()]
        Err.validation(f"Invalid {model.__name__}", {"fields": fields}).with_cause(exc).raise_()


# ── Vault ───────────────────────────────────────────────────

class VaultCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    icon_url: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class VaultUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    icon_url: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    metadata: Optional[Dict[str, str]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


# ── User ────────────────────────────────────────────────────

class UserCreate(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    tenant_id: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email format")
        return v.lower()


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar_url: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# ── Signup ──────────────────────────────────────────────────

class SignupRequest(BaseModel):
    token: str = Field(min_length=1)
    email: str = Field(min_length=3, max_length=320)
    name: Optional[str] = Field(default=None, max_length=255)
    tenant_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def _check_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email format")
        return v.lower()

    @property
    def display_name(self) -> str:
        return self.name or self.tenant_name or self.email.split("@", 1)[0]
