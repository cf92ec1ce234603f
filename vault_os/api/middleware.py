# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
API Middleware — identity gateway and request context.

Order (outermost first):
  1. IdentityGatewayMiddleware (only with AUTH_RESOLVE_IDENTITY): strips
     client-supplied identity headers, resolves the bearer token or session
     cookie, forwards x-user-id / x-user-email / x-tenant-id
  2. RequestContextMiddleware: binds one ContextRecord for the whole request
     and logs its duration
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from vault_os.api.errors import error_response
from vault_os.auth.boundary import IDENTITY_HEADERS, identity_headers, record_from_headers, run_in_context
from vault_os.auth.identity import extract_tenant_id
from vault_os.auth.routes import is_route_protected
from vault_os.core.container import get_container
from vault_os.core.context import RequestContext
from vault_os.core.errors import Err

logger = logging.getLogger("vault.api")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Creates the request context from identity headers.
    Sets X-Request-Id on the response and logs request duration.
    """

    async def dispatch(self, request: Request, call_next):
        if RequestContext.has_context():
            return await call_next(request)

        container = get_container()
        record = await record_from_headers(
            request.url.path,
            request.method,
            request.headers,
            users=container.users,
            cache=container.tenant_cache,
        )

        async def handle() -> Response:
            start = time.time()
            response: Response = await call_next(request)
            elapsed = (time.time() - start) * 1000
            response.headers["X-Request-Id"] = record.request_id
            logger.info(
                "[api] %s %s → %d (%.0fms)",
                request.method, request.url.path, response.status_code, elapsed,
            )
            return response

        return await run_in_context(record, handle)


def _access_token(request: Request, cookie_name: str) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(cookie_name) or None


class IdentityGatewayMiddleware(BaseHTTPMiddleware):
    """
    The upstream auth step, run in-process.

    Identity headers sent by the client are never trusted: they are removed
    before the token is resolved. Protected API routes without a valid
    identity get a 401 in the standard error shape.
    """

    async def dispatch(self, request: Request, call_next):
        container = get_container()
        headers = [
            (k, v) for k, v in request.scope["headers"]
            if k.decode("latin-1").lower() not in IDENTITY_HEADERS
        ]

        token = _access_token(request, container.settings.AUTH_COOKIE_NAME)
        identity = await container.identity_provider.get_user(token) if token else None

        if identity is None:
            if is_route_protected(request.url.path):
                return error_response(request, Err.unauthorized("Authentication required").build())
        else:
            forwarded = identity_headers(identity.id, identity.email, extract_tenant_id(identity))
            headers.extend((k.encode("latin-1"), str(v).encode("latin-1")) for k, v in forwarded.items())

        request.scope["headers"] = headers
        return await call_next(request)
