# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Error Taxonomy — typed application errors with stable codes.

    raise Err.not_found("Vault", vault_id).build()
    err = Err.database("Failed to update vault", exc).with_details({"vault_id": vid}).build()

Every AppError carries a machine-readable code, the HTTP status for that
code, a display message safe for users, an optional internal diagnostic,
structured details and the capture timestamp. ``kind`` groups codes into
the wire-level categories (validation, not_found, ...).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger("vault.errors")


class ErrorCode(str, Enum):
    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    BAD_REQUEST = "BAD_REQUEST"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Database
    DATABASE_ERROR = "DATABASE_ERROR"
    DATABASE_CONNECTION_ERROR = "DATABASE_CONNECTION_ERROR"
    DATABASE_QUERY_ERROR = "DATABASE_QUERY_ERROR"
    DATABASE_CONSTRAINT_ERROR = "DATABASE_CONSTRAINT_ERROR"

    # User
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    USER_INVALID_CREDENTIALS = "USER_INVALID_CREDENTIALS"
    USER_ACCOUNT_DISABLED = "USER_ACCOUNT_DISABLED"

    # Tenant
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    TENANT_ALREADY_EXISTS = "TENANT_ALREADY_EXISTS"
    TENANT_ACCESS_DENIED = "TENANT_ACCESS_DENIED"

    # Auth
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    INTERNAL = "internal"


STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.CONFLICT: 409,
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.DATABASE_CONNECTION_ERROR: 503,
    ErrorCode.DATABASE_QUERY_ERROR: 500,
    ErrorCode.DATABASE_CONSTRAINT_ERROR: 409,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.USER_ALREADY_EXISTS: 409,
    ErrorCode.USER_INVALID_CREDENTIALS: 401,
    ErrorCode.USER_ACCOUNT_DISABLED: 403,
    ErrorCode.TENANT_NOT_FOUND: 404,
    ErrorCode.TENANT_ALREADY_EXISTS: 409,
    ErrorCode.TENANT_ACCESS_DENIED: 403,
    ErrorCode.TOKEN_EXPIRED: 401,
    ErrorCode.TOKEN_INVALID: 401,
    ErrorCode.INSUFFICIENT_PERMISSIONS: 403,
}

# Default wire status per kind
KIND_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.DATABASE: 500,
    ErrorKind.INTERNAL: 500,
}

_CODE_KINDS: Dict[ErrorCode, ErrorKind] = {
    ErrorCode.INTERNAL_ERROR: ErrorKind.INTERNAL,
    ErrorCode.VALIDATION_ERROR: ErrorKind.VALIDATION,
    ErrorCode.BAD_REQUEST: ErrorKind.VALIDATION,
    ErrorCode.NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.USER_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.TENANT_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    ErrorCode.USER_INVALID_CREDENTIALS: ErrorKind.UNAUTHORIZED,
    ErrorCode.TOKEN_EXPIRED: ErrorKind.UNAUTHORIZED,
    ErrorCode.TOKEN_INVALID: ErrorKind.UNAUTHORIZED,
    ErrorCode.FORBIDDEN: ErrorKind.FORBIDDEN,
    ErrorCode.USER_ACCOUNT_DISABLED: ErrorKind.FORBIDDEN,
    ErrorCode.TENANT_ACCESS_DENIED: ErrorKind.FORBIDDEN,
    ErrorCode.INSUFFICIENT_PERMISSIONS: ErrorKind.FORBIDDEN,
    ErrorCode.CONFLICT: ErrorKind.CONFLICT,
    ErrorCode.USER_ALREADY_EXISTS: ErrorKind.CONFLICT,
    ErrorCode.TENANT_ALREADY_EXISTS: ErrorKind.CONFLICT,
    ErrorCode.DATABASE_CONSTRAINT_ERROR: ErrorKind.CONFLICT,
    ErrorCode.RATE_LIMIT_EXCEEDED: ErrorKind.RATE_LIMIT,
    ErrorCode.DATABASE_ERROR: ErrorKind.DATABASE,
    ErrorCode.DATABASE_CONNECTION_ERROR: ErrorKind.DATABASE,
    ErrorCode.DATABASE_QUERY_ERROR: ErrorKind.DATABASE,
}


class AppError(Exception):
    """Application error with a stable code and wire status."""

    def __init__(
        self,
        code: ErrorCode,
        display_message: str,
        internal_error: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
        status_code: Optional[int] = None,
    ):
        self.code = ErrorCode(code)
        self.status_code = status_code or STATUS_CODES[self.code]
        self.display_message = display_message
        self.internal_error = internal_error
        self.details = details or {}
        self.kind = kind
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(display_message)

    def to_response(self) -> Dict[str, Any]:
        """Raw response shape; no environment policy or redaction applied."""
        return {
            "success": False,
            "error": {
                "message": self.display_message,
                "code": self.code.value,
                "statusCode": self.status_code,
                "internal_error": self.internal_error,
                "details": self.details,
                "timestamp": self.timestamp.isoformat(),
            },
        }

    def __repr__(self) -> str:
        return f"AppError(code={self.code.value!r}, status={self.status_code}, message={self.display_message!r})"


class ErrorBuilder:
    """Fluent builder for AppError."""

    def __init__(self, code: ErrorCode, display_message: str):
        self._code = code
        self._display_message = display_message
        self._internal_error: Optional[str] = None
        self._details: Dict[str, Any] = {}
        self._cause: Optional[BaseException] = None
        self._kind: Optional[ErrorKind] = None

    @classmethod
    def new(cls, code: ErrorCode, message: str) -> "ErrorBuilder":
        return cls(code, message)

    @classmethod
    def wrap(cls, exc: BaseException) -> "ErrorBuilder":
        return cls(ErrorCode.INTERNAL_ERROR, str(exc) or type(exc).__name__).with_cause(exc)

    def with_message(self, message: str) -> "ErrorBuilder":
        """Internal diagnostic message (hidden in production)."""
        self._internal_error = message
        return self

    def with_hint(self, hint: str) -> "ErrorBuilder":
        """Replace the user-facing display message."""
        self._display_message = hint
        return self

    def with_details(self, details: Optional[Dict[str, Any]]) -> "ErrorBuilder":
        self._details = {**self._details, **(details or {})}
        return self

    def with_code(self, code: ErrorCode) -> "ErrorBuilder":
        self._code = code
        return self

    def with_kind(self, kind: ErrorKind) -> "ErrorBuilder":
        self._kind = kind
        return self

    def with_cause(self, cause: BaseException) -> "ErrorBuilder":
        self._cause = cause
        return self

    def build(self) -> AppError:
        internal = self._internal_error
        if internal is None and self._cause is not None:
            internal = f"{type(self._cause).__name__}: {self._cause}"
        error = AppError(
            self._code,
            self._display_message,
            internal_error=internal,
            details=self._details,
            kind=self._kind,
        )
        if self._cause is not None:
            error.__cause__ = self._cause
        return error

    def raise_(self) -> None:
        raise self.build()


class Err:
    """Named constructors for the common error kinds."""

    @staticmethod
    def validation(message: str, details: Optional[Dict[str, Any]] = None) -> ErrorBuilder:
        return (
            ErrorBuilder.new(ErrorCode.VALIDATION_ERROR, message)
            .with_kind(ErrorKind.VALIDATION)
            .with_details(details)
        )

    @staticmethod
    def not_found(resource: str, identifier: Optional[str] = None) -> ErrorBuilder:
        message = f"{resource} '{identifier}' not found" if identifier else f"{resource} not found"
        builder = ErrorBuilder.new(ErrorCode.NOT_FOUND, message).with_kind(ErrorKind.NOT_FOUND)
        if identifier:
            builder.with_details({"resource": resource, "identifier": identifier})
        return builder

    @staticmethod
    def unauthorized(message: str = "Unauthorized access") -> ErrorBuilder:
        return ErrorBuilder.new(ErrorCode.UNAUTHORIZED, message).with_kind(ErrorKind.UNAUTHORIZED)

    @staticmethod
    def forbidden(message: str = "Access forbidden") -> ErrorBuilder:
        return ErrorBuilder.new(ErrorCode.FORBIDDEN, message).with_kind(ErrorKind.FORBIDDEN)

    @staticmethod
    def conflict(message: str, details: Optional[Dict[str, Any]] = None) -> ErrorBuilder:
        return (
            ErrorBuilder.new(ErrorCode.CONFLICT, message)
            .with_kind(ErrorKind.CONFLICT)
            .with_details(details)
        )

    @staticmethod
    def database(message: str, cause: Optional[BaseException] = None) -> ErrorBuilder:
        builder = ErrorBuilder.new(ErrorCode.DATABASE_ERROR, message).with_kind(ErrorKind.DATABASE)
        if cause is not None:
            builder.with_cause(cause)
        return builder

    @staticmethod
    def internal(message: str = "Internal server error", cause: Optional[BaseException] = None) -> ErrorBuilder:
        builder = ErrorBuilder.new(ErrorCode.INTERNAL_ERROR, message).with_kind(ErrorKind.INTERNAL)
        if cause is not None:
            builder.with_cause(cause)
        return builder

    @staticmethod
    def rate_limit(message: str = "Too many requests", retry_after: Optional[int] = None) -> ErrorBuilder:
        builder = ErrorBuilder.new(ErrorCode.RATE_LIMIT_EXCEEDED, message).with_kind(ErrorKind.RATE_LIMIT)
        if retry_after is not None:
            builder.with_details({"retry_after": retry_after})
        return builder


# ── Kind detection ──────────────────────────────────────────

_CODE_MARKERS = (
    (("VALIDATION",), ErrorKind.VALIDATION),
    (("NOT_FOUND",), ErrorKind.NOT_FOUND),
    (("UNAUTHORIZED", "TOKEN"), ErrorKind.UNAUTHORIZED),
    (("FORBIDDEN", "PERMISSION"), ErrorKind.FORBIDDEN),
    (("CONFLICT",), ErrorKind.CONFLICT),
    (("DATABASE",), ErrorKind.DATABASE),
    (("RATE_LIMIT",), ErrorKind.RATE_LIMIT),
)

_MESSAGE_MARKERS = (
    (("required", "invalid", "validation", "format", "must be"), ErrorKind.VALIDATION),
    (("not found", "does not exist", "not exist"), ErrorKind.NOT_FOUND),
    (("unauthorized", "authentication", "login", "token"), ErrorKind.UNAUTHORIZED),
    (("forbidden", "permission", "access denied"), ErrorKind.FORBIDDEN),
    (("already exists", "duplicate", "conflict"), ErrorKind.CONFLICT),
    (("database", "connection", "query", "constraint"), ErrorKind.DATABASE),
    (("rate limit", "too many requests", "throttle"), ErrorKind.RATE_LIMIT),
)


def detect_error_kind(error: AppError) -> ErrorKind:
    """
    Infer the kind of an error.

    An explicitly tagged kind always wins. Otherwise the code is checked,
    then the message text, then well-known detail keys. Falls back to
    INTERNAL.
    """
    if error.kind is not None:
        return error.kind

    code = error.code.value
    if error.code in _CODE_KINDS and error.code is not ErrorCode.INTERNAL_ERROR:
        return _CODE_KINDS[error.code]
    for markers, kind in _CODE_MARKERS:
        if any(m in code for m in markers):
            return kind

    text = (error.display_message or str(error) or "").lower()
    for markers, kind in _MESSAGE_MARKERS:
        if any(m in text for m in markers):
            return kind

    details = error.details or {}
    if "field" in details or "validation" in details:
        return ErrorKind.VALIDATION
    if "resource" in details or "identifier" in details:
        return ErrorKind.NOT_FOUND
    if "database" in details or "query" in details:
        return ErrorKind.DATABASE

    return ErrorKind.INTERNAL


# ── Utilities ───────────────────────────────────────────────

def is_app_error(error: Any) -> bool:
    return isinstance(error, AppError)


def to_app_error(error: Any) -> AppError:
    """Normalize anything raised into an AppError (no re-wrapping)."""
    if isinstance(error, AppError):
        return error
    if isinstance(error, BaseException):
        return ErrorBuilder.wrap(error).build()
    message = error if isinstance(error, str) else "Unknown error occurred"
    return ErrorBuilder.new(ErrorCode.INTERNAL_ERROR, message).build()


def get_status_code(error: Any) -> int:
    return error.status_code if isinstance(error, AppError) else 500


def get_error_code(error: Any) -> str:
    return error.code.value if isinstance(error, AppError) else "UNKNOWN_ERROR"


def get_display_message(error: Any) -> str:
    if isinstance(error, AppError):
        return error.display_message
    if isinstance(error, BaseException):
        return str(error)
    return "An unexpected error occurred"


def log_error(error: Any, context: Optional[str] = None) -> None:
    app_error = to_app_error(error)
    prefix = f"[{context}] " if context else ""
    message = app_error.internal_error or app_error.display_message
    if app_error.status_code >= 500:
        logger.error(
            "%sServer error %s (%d): %s",
            prefix, app_error.code.value, app_error.status_code, message,
            exc_info=app_error.__cause__ or None,
        )
    else:
        logger.warning(
            "%sClient error %s (%d): %s",
            prefix, app_error.code.value, app_error.status_code, message,
        )
