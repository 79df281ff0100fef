"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_error_handlers
from api.routes import ROUTERS
from config.settings import Settings, get_settings
from models.database import Database
from services.ai_service import AIService
from services.event_bus import EventBus
from tools.llm_client import LLMClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    llm: Optional[LLMClient] = None,
    event_bus: Optional[EventBus] = None,
) -> FastAPI:
    """Build the app; collaborators default to ones built from settings."""
    settings = settings or get_settings()

    app = FastAPI(
        title="PowerWrite Book Studio API",
        description="Outline generation, book editing and video export jobs",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = db or Database(settings.sqlite_db_path)
    app.state.event_bus = event_bus or EventBus(settings)
    app.state.ai_service = AIService(llm or LLMClient(settings), settings)

    register_error_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "llmConfigured": settings.has_llm_provider}

    logger.info("App created (db=%s)", settings.sqlite_db_path)
    return app
