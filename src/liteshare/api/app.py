"""FastAPI application for the upload quota service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI

from liteshare import __version__
from liteshare.api.routes import router as api_router
from liteshare.config import Settings, get_settings
from liteshare.quota.store import RateLimitStore
from liteshare.quota.sweeper import Sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    # Startup
    logger.info("Starting LiteShare quota API...")
    app.state.sweeper.start()
    yield
    # Shutdown
    logger.info("Shutting down LiteShare quota API...")
    app.state.sweeper.shutdown(wait=False)


def create_app(
    settings: Settings | None = None,
    store: RateLimitStore | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment settings)
        store: Store to serve from (defaults to a new store built from settings)
    """
    if settings is None:
        settings = get_settings()
    if store is None:
        store = RateLimitStore(policies=settings.build_policies())

    app = FastAPI(
        title="LiteShare Upload Quota",
        description="Per-identity upload rationing by request count and bytes",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.quota_store = store
    app.state.sweeper = Sweeper(store, interval_seconds=settings.sweep_interval_seconds)

    app.include_router(api_router, prefix="/v1")

    # Health check
    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "sweeper": app.state.sweeper.get_status(),
        }

    return app
