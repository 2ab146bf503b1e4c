"""
Database models for e-SME.
"""

from .base import Base
from .user import User
from .conversation import Conversation, Message
from .document import AttachedDocument
from .share import ChatShare

__all__ = ["Base", "User", "Conversation", "Message", "AttachedDocument", "ChatShare"]
