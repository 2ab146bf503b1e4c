"""
Main FastAPI application for e-SME.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.templating import Jinja2Templates
from pathlib import Path
from typing import Optional
import logging

from ..config import Config
from ..database import Database
from ..services.documents import DocumentFetcher
from ..services.llm import LLMService
from ..services.slack import SlackClientFactory, create_slack_client
from .ai import ai_router
from .chats import chats_router
from .shares import shares_router
from .slack import slack_router

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


def create_app(
    config: Config,
    database: Optional[Database] = None,
    slack_client_factory: SlackClientFactory = create_slack_client,
    llm: Optional[LLMService] = None
) -> FastAPI:
    """Create FastAPI application."""
    app = FastAPI(
        title=f"{config.bot.name} Slack Bridge",
        description="Document chats mirrored into private Slack channels",
        version="0.1.0"
    )

    app.state.config = config
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

    # Collaborators with external side effects, swappable in tests
    app.state.slack_client_factory = slack_client_factory
    app.state.llm = llm or LLMService(config.llm)
    app.state.document_fetcher_factory = DocumentFetcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.bot.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Initialize database
    if database is None:
        database = Database.from_config(config.database)
    database.init_schema()
    app.state.database = database

    # Include routers
    app.include_router(slack_router, prefix="/api/slack", tags=["slack"])
    app.include_router(chats_router, prefix="/api/chats", tags=["chats"])
    app.include_router(shares_router, prefix="/api/chats", tags=["shares"])
    app.include_router(ai_router, prefix="/api/ai", tags=["ai"])

    @app.get("/api/ping")
    async def ping():
        return {"message": f"{config.bot.name} Slack bridge is running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    logger.info(f"{config.bot.name} application created")
    return app
