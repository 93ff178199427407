"""
wikiauth callback server.

Stateless FastAPI application receiving wiki provider redirects.
Run with: uvicorn --factory wikiauth.main:build_app
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from wikiauth.config import Settings
from wikiauth.db import Database
from wikiauth.logging_setup import setup_logging
from wikiauth.middleware.rate_limit import RateLimiter
from wikiauth.repos.auth_request_repo import AuthRequestRepo
from wikiauth.repos.linked_account_repo import LinkedAccountRepo
from wikiauth.routes import callback as callback_routes
from wikiauth.services.alerts import AlertService
from wikiauth.services.callback_service import CallbackService
from wikiauth.services.wiki_oauth import WikiOAuthClient

logger = logging.getLogger(__name__)


async def prune_task(registry: AuthRequestRepo, limiter: RateLimiter, settings: Settings) -> None:
    """
    Background task deleting finished link requests past the retention window.

    Not needed for correctness: expiry is computed from timestamps.
    """
    retention = timedelta(hours=settings.AUTH_REQUEST_RETENTION_HOURS)

    while True:
        try:
            deleted_count = await registry.prune(retention)
            if deleted_count > 0:
                logger.info("Pruned %d finished link requests", deleted_count)

            limiter.cleanup_old_entries()
        except Exception:
            logger.exception("Error in prune task")

        await asyncio.sleep(settings.PRUNE_INTERVAL_SECONDS)


def create_app(settings: Settings, database: Database | None = None) -> FastAPI:
    """
    Build the callback application around one settings snapshot.

    Every dependency is constructed here and hung off app.state; routes
    read them through FastAPI dependencies.
    """
    database = database or Database(settings.DATABASE_URL)
    registry = AuthRequestRepo(database, ttl=timedelta(minutes=settings.AUTH_REQUEST_TTL_MINUTES))
    alerts = AlertService(settings)
    limiter = RateLimiter(settings.CALLBACK_RATE_LIMIT_PER_IP, window=timedelta(minutes=10))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: initialize the database pool and start the prune task.
        Shutdown: stop the task and close the pool.
        """
        await database.init_pool()
        logger.info("Database pool initialized")

        prune_handle = asyncio.create_task(prune_task(registry, limiter, settings))

        yield

        prune_handle.cancel()
        try:
            await prune_handle
        except asyncio.CancelledError:
            logger.info("Prune task stopped")

        await database.close_pool()
        logger.info("Database pool closed")

    app = FastAPI(
        title="wikiauth",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.callback_service = CallbackService(
        oauth=WikiOAuthClient(settings),
        registry=registry,
        links=LinkedAccountRepo(database),
        alerts=alerts,
    )

    app.include_router(callback_routes.router)

    @app.get("/health")
    async def health():
        """Health check endpoint for uptime monitoring."""
        return {"status": "ok"}

    return app


def build_app() -> FastAPI:
    """Entry point for uvicorn: settings from the environment."""
    settings = Settings.from_env()
    settings.validate_required()
    setup_logging(settings.LOG_LEVEL)
    return create_app(settings)

