"""
AI Learning Buddy FastAPI Application Entry Point.

Run with: uvicorn learning_buddy.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learning_buddy.api.routes import chat, memory, videos
from learning_buddy.config import get_settings
from learning_buddy.db.session import init_models
from learning_buddy.services import memory_updater
from learning_buddy.services.concept_extraction import select_concept_extractor

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    if settings.database_url.startswith("sqlite"):
        await init_models()
    memory_updater.extractor = await select_concept_extractor(settings)
    logger.info("%s started (environment=%s)", settings.app_name, settings.environment)
    yield
    # Shutdown


app = FastAPI(
    title=settings.app_name,
    description="Memory-backed, video-aware AI tutor API for K-12 teachers",
    version="0.1.0",
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

# Include routers
app.include_router(chat.router)
app.include_router(memory.router)
app.include_router(videos.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "concept_extraction": type(memory_updater.extractor).__name__,
    }
