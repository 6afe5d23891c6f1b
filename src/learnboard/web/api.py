"""FastAPI application factory.

Main entry point for the learnboard Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnboard import __version__
from learnboard.db.database import get_db_path, init_db
from learnboard.web.routes import (
    enrollments_router,
    health_router,
    quizzes_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    init_db()
    logger.info("api_startup", db_path=str(get_db_path().absolute()))
    yield
    # Shutdown (nothing to do for now)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Learnboard API",
        description="Enrollment state and quiz performance API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(quizzes_router)

    return app


# Default app instance for uvicorn
app = create_app()
