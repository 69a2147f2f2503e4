"""
FastAPI application for ProjectHub.

This is the HTTP API for accounts, invitations and projects.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projecthub.api.admin import router as admin_router
from projecthub.api.deps import init_services
from projecthub.api.errors import register_exception_handlers
from projecthub.api.projects import router as projects_router
from projecthub.api.responses import envelope
from projecthub.api.users import router as users_router
from projecthub.auth.routes import router as auth_router
from projecthub.config import configure_logging, get_settings, validate_environment
from projecthub.core.utils import utc_now
from projecthub.integrations.sentry import init_sentry
from projecthub.seed import seed
from projecthub.services.maintenance import reconcile
from projecthub.storage import create_memory_storage, ensure_indexes

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    configure_logging()
    settings = validate_environment()

    # Initialize error tracking (Sentry)
    if init_sentry():
        logger.info("Sentry error tracking enabled")

    # Initialize storage
    storage = create_memory_storage()
    await ensure_indexes(storage)
    if settings.seed_on_startup:
        await seed(storage)

    # Finish writes interrupted by a previous crash
    await reconcile(storage)

    # Initialize services
    init_services(storage)

    logger.info(f"ProjectHub API starting in {settings.environment} mode")

    yield

    logger.info("ProjectHub API shutting down")


# =============================================================================
# App Setup
# =============================================================================


app = FastAPI(
    title="ProjectHub API",
    description="Accounts, invitations and project membership",
    version="0.1.0",
    lifespan=lifespan,
)


# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(projects_router)
app.include_router(admin_router)


# =============================================================================
# Health
# =============================================================================


@app.get("/health")
async def health():
    return envelope(
        {"status": "ok", "environment": settings.environment, "timestamp": utc_now().isoformat()},
        "Server is running",
    )
