"""
API endpoints for e-SME.
"""

from .main import create_app
from .slack import slack_router
from .chats import chats_router
from .shares import shares_router
from .ai import ai_router

__all__ = ["create_app", "slack_router", "chats_router", "shares_router", "ai_router"]
