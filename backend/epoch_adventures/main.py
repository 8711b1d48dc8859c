"""Epoch Adventures API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map EpochError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from epoch_adventures.infrastructure.database import init_db, close_db
from epoch_adventures.infrastructure.observability import setup_logging
from epoch_adventures.config import get_settings
from epoch_adventures.api.error_handlers import register_error_handlers
from epoch_adventures.api.routes import adventures, health, journeys

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Epoch Adventures API started")
    yield
    logger.info("Epoch Adventures API shutting down")
    await close_db()


app = FastAPI(
    title="Epoch Adventures API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(adventures.router)
app.include_router(journeys.router)

register_error_handlers(app)
