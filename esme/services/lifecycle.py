"""
Keeps Slack channels in step with conversation renames and deletes.
"""

from typing import Optional
import logging

from ..models.conversation import Conversation
from .channels import ArchiveResult, ChannelDirectory, RenameResult

logger = logging.getLogger(__name__)


class LifecycleCoordinator:
    """Best-effort channel mirroring for conversation mutations; never raises."""

    def __init__(self, directory: ChannelDirectory):
        self.directory = directory

    def on_rename(self, conversation: Conversation, old_name: Optional[str]) -> Optional[RenameResult]:
        """Call after the conversation's new name has been committed."""
        if conversation.name == old_name or not conversation.slack_channel_id:
            return None

        try:
            result = self.directory.rename(conversation)
        except Exception as e:
            logger.error(f"Slack rename sync failed for conversation {conversation.id}: {e}", exc_info=True)
            return None

        if not result.ok:
            logger.warning(f"Slack rename sync for conversation {conversation.id} did not apply: {result.reason} {result.error or ''}")
        return result

    def on_delete(self, conversation: Conversation) -> Optional[ArchiveResult]:
        """Call before the conversation row is removed."""
        if not conversation.slack_channel_id:
            return None

        try:
            result = self.directory.archive(conversation)
        except Exception as e:
            logger.error(f"Slack archive sync failed for conversation {conversation.id}: {e}", exc_info=True)
            return None

        if not result.ok:
            logger.warning(f"Slack archive sync for conversation {conversation.id} did not apply: {result.reason} {result.error or ''}")
        return result
