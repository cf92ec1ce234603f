# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
Structured Logging — JSON format with request context.
"""

from __future__ import annotations

import json
import logging
import sys

from vault_os.core.context import RequestContext

_CONTEXT_FIELDS = ("request_id", "tenant_id", "user_id")


class RequestContextFilter(logging.Filter):
    """Copy request/tenant/user ids from the active RequestContext onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in _CONTEXT_FIELDS:
            if getattr(record, key, None) is None:
                setattr(record, key, RequestContext.try_get(key))
        return True


class StructuredFormatter(logging.Formatter):
    """JSON log formatter with request/tenant/user context."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        # Attach context if available
        for key in _CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val:
                log_entry[key] = val

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the service."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
