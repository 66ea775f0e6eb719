"""FastAPI application factory.

Main entry point for the practice engine Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from practice.config.app_config import load_app_config
from practice.core.selector import Selector
from practice.db.database import init_db
from practice.web.engine import get_selector, set_selector
from practice.web.routes import (
    content_router,
    health_router,
    levels_router,
    practice_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the schema before the first request."""
    config = load_app_config()
    db_path = init_db(config.db_path)
    selector = get_selector()
    logger.info(
        "api_startup",
        db_path=str(db_path),
        provider=config.generator.provider,
        model=config.generator.model,
        pregenerate_target=selector.pregenerate_target,
    )
    yield


def create_app(selector: Selector | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        selector: Pre-built selector (built from config when omitted)

    Returns:
        Configured FastAPI app instance
    """
    if selector is not None:
        set_selector(selector)

    app = FastAPI(
        title="Adaptive Practice API",
        description="Content selection and leveling for language practice",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(practice_router)
    app.include_router(levels_router)
    app.include_router(content_router)

    return app


# Default app instance for uvicorn
app = create_app()
