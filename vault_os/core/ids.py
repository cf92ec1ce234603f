# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Entity identifiers — kind-prefixed opaque ids, e.g. ``vault_3f2a…``.
"""

from __future__ import annotations

import uuid
from enum import Enum


class IdPrefix(str, Enum):
    USER = "user"
    TENANT = "tenant"
    VAULT = "vault"


def generate_id() -> str:
    return uuid.uuid4().hex


def generate_id_with_prefix(prefix: IdPrefix) -> str:
    return f"{IdPrefix(prefix).value}_{generate_id()}"

