# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
API Error Handling — one wire shape for every failure.

    {"success": false,
     "error": {"message", "code", "statusCode", "internal_error"?, "details"?, "timestamp"}}

The environment decides what leaves the process:
  - details are always redacted (sensitive keys → "[REDACTED]", recursively)
  - production drops internal_error, swaps database/internal messages for
    generic text and empties their details
  - validation and not-found errors are expected traffic and are not logged
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vault_os.core.config import settings as default_settings
from vault_os.core.errors import AppError, Err, ErrorKind, KIND_STATUS, detect_error_kind

logger = logging.getLogger("vault.api.errors")

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "apikey",
    "api_key",
    "authorization",
    "cookie",
    "session",
    "ssn",
    "creditcard",
    "privatekey",
    "private_key",
    "connectionstring",
    "connection_string",
)

_GENERIC_MESSAGES = {
    ErrorKind.DATABASE: "A database error occurred. Please try again later.",
    ErrorKind.INTERNAL: "An unexpected error occurred. Please try again later.",
}

_UNLOGGED = (ErrorKind.VALIDATION, ErrorKind.NOT_FOUND)


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(s in lowered for s in SENSITIVE_KEYS)


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_details(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    return value


def sanitize_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``details`` with every sensitive key redacted at any depth."""
    return {
        key: REDACTED if _is_sensitive(key) else _sanitize_value(value)
        for key, value in (details or {}).items()
    }


def build_error_response(error: AppError, production: bool) -> Tuple[int, Dict[str, Any]]:
    kind = detect_error_kind(error)
    status = error.status_code or KIND_STATUS[kind]
    hide_internals = production and kind in _GENERIC_MESSAGES

    body: Dict[str, Any] = {
        "message": _GENERIC_MESSAGES[kind] if hide_internals else error.display_message,
        "code": error.code.value,
        "statusCode": status,
    }
    if not production and error.internal_error:
        body["internal_error"] = error.internal_error
    body["details"] = {} if hide_internals else sanitize_details(error.details)
    body["timestamp"] = error.timestamp.isoformat()
    return status, {"success": False, "error": body}


def _production(request: Request) -> bool:
    configured = getattr(request.app.state, "settings", None) or default_settings
    return configured.is_production


def error_response(request: Request, error: AppError) -> JSONResponse:
    kind = detect_error_kind(error)
    if kind not in _UNLOGGED:
        message = "%s %s → %s (%d): %s"
        args = (
            request.method, request.url.path, error.code.value,
            error.status_code, error.internal_error or error.display_message,
        )
        if error.status_code >= 500:
            logger.error(message, *args, exc_info=error.__cause__ or None)
        else:
            logger.warning(message, *args)

    status, body = build_error_response(error, _production(request))
    headers = {}
    retry_after = error.details.get("retry_after") if kind is ErrorKind.RATE_LIMIT else None
    if retry_after:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(status_code=status, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg")}
        for e in exc.errors()
    ]
    return error_response(request, Err.validation("Validation failed", {"fields": fields}).build())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, Err.internal(cause=exc).build())
