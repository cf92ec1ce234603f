# Copyright (c) 2026 VaultOS Contributors. All Rights Reserved.

"""
VaultOS Application Entry Point.

FastAPI app with lifespan, middleware, error handlers and all API routers.

    uvicorn vault_os.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vault_os.api.auth import router as auth_router
from vault_os.api.errors import app_error_handler, request_validation_handler, unhandled_error_handler
from vault_os.api.middleware import IdentityGatewayMiddleware, RequestContextMiddleware
from vault_os.api.observability import router as observability_router
from vault_os.api.users import router as users_router
from vault_os.api.vaults import router as vaults_router
from vault_os.core.config import VaultSettings, settings as default_settings
from vault_os.core.container import init_container
from vault_os.core.errors import AppError
from vault_os.core.logging import setup_logging
from vault_os.storage.database import close_db, get_session_factory, init_db
from vault_os.storage.redis_client import close_redis, get_redis

logger = logging.getLogger("vault.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown of database, Redis and HTTP clients."""
    # Startup
    setup_logging(app.state.settings.LOG_LEVEL)
    await init_db(app.state.settings.DATABASE_URL)
    container = init_container(get_session_factory(), get_redis(), app.state.settings)
    logger.info("[VaultOS] Service ready (env=%s)", app.state.settings.VAULT_ENV)
    yield
    # Shutdown
    await container.aclose()
    await close_redis()
    await close_db()
    logger.info("[VaultOS] Shutdown complete")


def create_app(settings: Optional[VaultSettings] = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="VaultOS",
        description="Multi-tenant vault organizer API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── Middleware (last added runs first) ──────────────────
    app.add_middleware(RequestContextMiddleware)
    if settings.AUTH_RESOLVE_IDENTITY:
        app.add_middleware(IdentityGatewayMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error Handlers ──────────────────────────────────────
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ── Routes ──────────────────────────────────────────────
    app.include_router(vaults_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(observability_router)

    return app


app = create_app()
