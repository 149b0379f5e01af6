"""FastAPI bootstrap that owns the shared account repository for the process lifetime."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from .config import Settings, get_settings
from .repositories import build_account_repository

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; the repository is created on startup and closed on shutdown."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialise the shared repository (and its client) for the app lifecycle."""
        logging.basicConfig(level=settings.log_level)
        repository = build_account_repository(settings)
        app.state.account_repository = repository
        try:
            yield
        finally:
            repository.close()
            logger.info("account repository closed")

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

    @app.get("/healthz", tags=["health"])
    def healthz(request: Request) -> dict[str, str]:
        """Return a readiness indicator including document store reachability."""
        reachable = request.app.state.account_repository.ping()
        return {"status": "ok" if reachable else "degraded", "backend": settings.backend}

    return app
