# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Route Matching — which paths the identity gateway guards.

Patterns are matched as:
  - ``*``        everything
  - ``/x/*``     any path starting with ``/x/``
  - ``/x``       ``/x`` itself or anything below it (``/x/...``)
"""

from __future__ import annotations

import re
from typing import Iterable

PROTECTED_API_ROUTES = (
    "/api/v1/vaults",
    "/api/v1/users",
)

PUBLIC_ROUTES = (
    "/health",
    "/api/v1/auth",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
)

_API = re.compile(r"^/api/")
_STATIC = re.compile(r"\.(js|css|png|jpg|jpeg|gif|ico|svg|woff|woff2|ttf|eot)$")


def matches_route(pathname: str, route: str) -> bool:
    if route == "*":
        return True
    if route.endswith("*"):
        return pathname.startswith(route[:-1])
    return pathname == route or pathname.startswith(route + "/")


def _matches_any(pathname: str, routes: Iterable[str]) -> bool:
    return any(matches_route(pathname, r) for r in routes)


def is_api_route(pathname: str) -> bool:
    return bool(_API.match(pathname))


def is_public_route(pathname: str) -> bool:
    return _matches_any(pathname, PUBLIC_ROUTES) or bool(_STATIC.search(pathname))


def is_route_protected(pathname: str) -> bool:
    if is_public_route(pathname):
        return False
    return _matches_any(pathname, PROTECTED_API_ROUTES)
