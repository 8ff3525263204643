"""FastAPI application entry point for clearpage."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clearpage import __version__
from clearpage.api.routes import router
from clearpage.config import get_settings
from clearpage.utils.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    logger = get_logger(__name__)
    logger.info("clearpage starting", version=__version__)
    yield
    logger.info("clearpage shutting down")


app = FastAPI(
    title="clearpage",
    description="Readable article retrieval for pages behind paywalls and bot walls",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic info."""
    return {
        "name": "clearpage",
        "version": __version__,
        "docs": "/docs",
    }
