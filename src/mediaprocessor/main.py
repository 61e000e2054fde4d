"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediaprocessor.api.errors import register_exception_handlers
from mediaprocessor.api.routes import router
from mediaprocessor.config import get_settings
from mediaprocessor.constants import MAX_DIMENSION, MAX_PIXELS
from mediaprocessor.storage.client import StorageProxyClient
from mediaprocessor.transform.pool import ComputePool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting media processor (max_concurrent=%s, max_dimension=%s, max_pixels=%s, storage=%s)",
        settings.max_concurrent,
        MAX_DIMENSION,
        MAX_PIXELS,
        settings.storage_proxy_url,
    )

    storage_client = StorageProxyClient.from_settings(settings)
    compute_pool = ComputePool(settings)
    app.state.storage_client = storage_client
    app.state.compute_pool = compute_pool

    logger.info("Media processor ready")
    yield

    logger.info("Shutting down media processor")
    await storage_client.aclose()
    compute_pool.shutdown()
    logger.info("Media processor shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Media Processor",
        description="On-demand image transformation backed by a storage proxy",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("mediaprocessor.main:app", host=settings.host, port=settings.port)
