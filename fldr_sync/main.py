"""FastAPI application factory for the reference fldr remote store."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fldr_sync.config import get_settings
from fldr_sync.infrastructure.dependencies import get_fldr_repository
from fldr_sync.infrastructure.logging.log_config import setup_logging
from fldr_sync.presentation.api.v1.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — configure logging, report what is being served."""
    settings = get_settings()
    setup_logging()

    fldrs = await get_fldr_repository().get_all()
    logger.info(
        "%s %s (%s) serving %d fldrs",
        settings.app_title, settings.app_version, settings.app_env, len(fldrs),
    )

    yield

    logger.info("%s shutting down", settings.app_title)


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fldr_sync.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
