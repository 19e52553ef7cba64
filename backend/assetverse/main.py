"""AssetVerse API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map AssetVerseError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from assetverse.api.error_handlers import register_error_handlers
from assetverse.api.routes import (
    assets, assignments, health, members, requests, sponsors,
)
from assetverse.config import get_settings
from assetverse.infrastructure import database
from assetverse.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("AssetVerse API started")
    yield
    if database.db_manager:
        await database.db_manager.engine.dispose()
    logger.info("AssetVerse API shutting down")


app = FastAPI(title="AssetVerse API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(sponsors.router)
app.include_router(members.router)
app.include_router(assets.router)
app.include_router(requests.router)
app.include_router(assignments.router)

register_error_handlers(app)
