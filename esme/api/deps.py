"""
Request-scoped dependencies and service wiring for the API routers.

Collaborators that talk to the outside world (Slack client factory, LLM,
document fetcher factory) live on ``app.state`` so tests can swap them.
"""

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session
from typing import Any, Optional
import logging

from ..config import Config
from ..database import get_session
from ..models.user import User
from ..services.answers import AnswerPipeline
from ..services.channels import ChannelDirectory
from ..services.credentials import find_user_by_email
from ..services.google_tokens import GoogleTokenService
from ..services.lifecycle import LifecycleCoordinator
from ..services.sync import MessageSynchronizer

logger = logging.getLogger(__name__)


def get_config(request: Request) -> Config:
    """Get application configuration."""
    return request.app.state.config


def get_current_user(
    x_user_email: Optional[str] = Header(None),
    db: Session = Depends(get_session)
) -> User:
    """Resolve the signed-in user from the X-User-Email header."""
    if not x_user_email:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = find_user_by_email(db, x_user_email.strip())
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Google access token from the web session, passed as a Bearer token."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=401,
            detail={"error": "Missing Google access token. Please re-authenticate with Google.", "needsAuth": True}
        )
    return authorization[len("bearer "):].strip()


def build_directory(db: Session, state: Any) -> ChannelDirectory:
    config: Config = state.config
    return ChannelDirectory(db, config.bot, config.slack, client_factory=state.slack_client_factory)


def build_pipeline(state: Any) -> AnswerPipeline:
    config: Config = state.config
    return AnswerPipeline(
        state.llm,
        config.bot.default_system_prompt,
        fetcher_factory=state.document_fetcher_factory
    )


def build_synchronizer(db: Session, state: Any) -> MessageSynchronizer:
    config: Config = state.config
    return MessageSynchronizer(
        db,
        config.slack,
        pipeline=build_pipeline(state),
        token_service=GoogleTokenService(db, config.google),
        client_factory=state.slack_client_factory
    )


def get_directory(request: Request, db: Session = Depends(get_session)) -> ChannelDirectory:
    return build_directory(db, request.app.state)


def get_synchronizer(request: Request, db: Session = Depends(get_session)) -> MessageSynchronizer:
    return build_synchronizer(db, request.app.state)


def get_pipeline(request: Request) -> AnswerPipeline:
    return build_pipeline(request.app.state)


def get_lifecycle(directory: ChannelDirectory = Depends(get_directory)) -> LifecycleCoordinator:
    return LifecycleCoordinator(directory)
