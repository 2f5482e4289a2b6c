"""FastAPI application factory.

Main entry point for the Telxtab Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from telxtab import __version__
from telxtab.config.app_config import load_app_config
from telxtab.db.database import init_db
from telxtab.web.routes import (
    health_router,
    auth_router,
    profiles_router,
    follows_router,
    blog_router,
    courses_router,
    progress_router,
    exercises_router,
    ai_router,
    messages_router,
    notifications_router,
    admin_router,
    admin_content_router,
    storage_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    config = load_app_config()
    init_db(config.db_path)
    logger.info(
        "api_startup",
        db_path=str(config.db_path.absolute()),
        storage_dir=str(config.storage_dir.absolute()),
        ai_provider=config.ai.default_provider,
        providers=sorted(config.providers),
    )
    yield
    # Shutdown (nothing to do for now)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Telxtab API",
        description="Web API for the Telxtab language-learning platform",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(follows_router)
    app.include_router(blog_router)
    app.include_router(courses_router)
    app.include_router(progress_router)
    app.include_router(exercises_router)
    app.include_router(ai_router)
    app.include_router(messages_router)
    app.include_router(notifications_router)
    app.include_router(admin_router)
    app.include_router(admin_content_router)
    app.include_router(storage_router)

    return app


# Default app instance for uvicorn
app = create_app()
