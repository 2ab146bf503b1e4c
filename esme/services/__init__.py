"""
Services for e-SME.
"""

from .answers import AnswerPipeline
from .channels import ChannelDirectory
from .google_tokens import GoogleTokenService
from .lifecycle import LifecycleCoordinator
from .llm import LLMService
from .slack import SlackClient
from .sync import MessageSynchronizer

__all__ = ["AnswerPipeline", "ChannelDirectory", "GoogleTokenService", "LifecycleCoordinator", "LLMService", "SlackClient", "MessageSynchronizer"]
