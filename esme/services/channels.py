"""
Channel directory: one private Slack channel per conversation.

The binding (slack_channel_id, slack_channel_name) lives on the Conversation
row. Channels are created lazily, renamed when the conversation is renamed,
and archived (Slack has no delete) when the conversation is deleted. Missing
Slack credentials are reported as an outcome, never raised into the caller's
primary action.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import re

from sqlalchemy.orm import Session

from ..config import BotConfig, SlackConfig
from ..errors import (
    NoCredential,
    ChannelNameCollision,
    SlackAPIError,
    NameTaken,
    AlreadyInChannel,
    AlreadyArchived,
    ChannelNotFound,
)
from ..models.conversation import Conversation
from .blocks import build_init_blocks, build_init_text
from .slack import SlackClient, SlackClientFactory, create_slack_client

logger = logging.getLogger(__name__)

MAX_CHANNEL_NAME_LENGTH = 80
ID_SUFFIX_LENGTH = 8


def sanitize_channel_name(name: Optional[str], conversation_id: str, prefix: str = "esme") -> str:
    """
    Derive a Slack channel name for a conversation.

    ``"Q3 Planning Notes!!"`` with an id ending in ``ab12cd34`` becomes
    ``esme-q3-planning-notes-ab12cd34``. The id suffix survives truncation.
    """
    sanitized = (name or "").lower()
    sanitized = re.sub(r"[^a-z0-9\-_]", "-", sanitized)
    sanitized = re.sub(r"-+", "-", sanitized)
    sanitized = sanitized.strip("-") or "chat"

    suffix = conversation_id[-ID_SUFFIX_LENGTH:].lower()
    head = f"{prefix}-{sanitized}"

    max_head_length = MAX_CHANNEL_NAME_LENGTH - len(suffix) - 1
    if len(head) > max_head_length:
        head = head[:max_head_length].rstrip("-")

    return f"{head}-{suffix}"


@dataclass
class RenameResult:
    ok: bool
    changed: bool
    final_name: Optional[str] = None
    reason: Optional[str] = None
    fallback_used: bool = False
    error: Optional[str] = None


@dataclass
class ArchiveResult:
    ok: bool
    archived: bool
    reason: Optional[str] = None
    error: Optional[str] = None


class ChannelDirectory:
    """Maps conversations to Slack channels and keeps the binding consistent."""

    def __init__(
        self,
        db: Session,
        bot_config: BotConfig,
        slack_config: SlackConfig,
        client_factory: SlackClientFactory = create_slack_client
    ):
        self.db = db
        self.bot_config = bot_config
        self.slack_config = slack_config
        self.client_factory = client_factory

    def channel_name_for(self, conversation: Conversation, name: Optional[str] = None) -> str:
        return sanitize_channel_name(
            conversation.name if name is None else name,
            conversation.id,
            self.slack_config.channel_prefix
        )

    def client_for(self, conversation: Conversation) -> SlackClient:
        """Slack client acting with the owner's bot token; raises NoCredential without one."""
        owner = conversation.owner
        if owner is None or not owner.slack_access_token:
            raise NoCredential("slack", conversation.owner_id)
        return self.client_factory(owner.slack_access_token)

    def ensure_channel(self, conversation: Conversation) -> str:
        """Return the conversation's channel id, creating and binding a channel if needed."""
        if conversation.slack_channel_id:
            return conversation.slack_channel_id

        client = self.client_for(conversation)
        channel_name = self.channel_name_for(conversation)

        channel = client.create_private_channel(channel_name)
        channel_id = channel["id"]
        bound_name = channel.get("name") or channel_name

        # Bind only if nobody else did meanwhile
        updated = self.db.query(Conversation).filter(
            Conversation.id == conversation.id,
            Conversation.slack_channel_id.is_(None)
        ).update(
            {"slack_channel_id": channel_id, "slack_channel_name": bound_name},
            synchronize_session=False
        )
        self.db.commit()
        self.db.refresh(conversation)

        if not updated:
            logger.warning(
                f"Conversation {conversation.id} was bound to {conversation.slack_channel_id} concurrently; "
                f"archiving orphan channel {channel_id}"
            )
            try:
                client.archive_channel(channel_id)
            except SlackAPIError as e:
                logger.error(f"Failed to archive orphan channel {channel_id}: {e}")
            return conversation.slack_channel_id

        logger.info(f"Bound conversation {conversation.id} to Slack channel {channel_id} ({bound_name})")

        try:
            client.set_topic(channel_id, self._topic_for(conversation))
        except SlackAPIError as e:
            logger.warning(f"Failed to set topic on channel {channel_id}: {e}")

        self._post_init_message(client, conversation, channel_id)

        return channel_id

    def rename(self, conversation: Conversation) -> RenameResult:
        """Mirror the conversation's current name onto its channel."""
        if not conversation.slack_channel_id:
            return RenameResult(ok=True, changed=False, reason="no_channel")

        try:
            client = self.client_for(conversation)
        except NoCredential:
            return RenameResult(ok=False, changed=False, final_name=conversation.slack_channel_name, reason="no_credential")

        desired_name = self.channel_name_for(conversation)
        if conversation.slack_channel_name == desired_name:
            return RenameResult(ok=True, changed=False, final_name=desired_name, reason="unchanged")

        fallback_used = False
        try:
            try:
                final_name = client.rename_channel(conversation.slack_channel_id, desired_name)
            except NameTaken:
                fallback_name = self.channel_name_for(conversation, f"{conversation.name}-1")
                logger.info(f"Channel name {desired_name} is taken, retrying with {fallback_name}")
                fallback_used = True
                final_name = self._rename_fallback(client, conversation.slack_channel_id, fallback_name)
        except ChannelNameCollision as e:
            logger.warning(f"Could not rename channel {conversation.slack_channel_id}: {e}")
            return RenameResult(
                ok=False,
                changed=False,
                final_name=conversation.slack_channel_name,
                reason="name_collision",
                fallback_used=True,
                error=NameTaken.code
            )
        except SlackAPIError as e:
            logger.error(f"Failed to rename channel {conversation.slack_channel_id}: {e}")
            return RenameResult(
                ok=False,
                changed=False,
                final_name=conversation.slack_channel_name,
                reason="rename_failed",
                fallback_used=fallback_used,
                error=e.code
            )

        conversation.slack_channel_name = final_name
        self.db.commit()
        logger.info(f"Renamed channel {conversation.slack_channel_id} to {final_name}")

        try:
            client.set_topic(conversation.slack_channel_id, self._topic_for(conversation))
        except SlackAPIError as e:
            logger.debug(f"Ignoring topic update failure: {e}")

        return RenameResult(ok=True, changed=True, final_name=final_name, reason="renamed", fallback_used=fallback_used)

    def archive(self, conversation: Conversation) -> ArchiveResult:
        """Archive the conversation's channel and clear the binding."""
        if not conversation.slack_channel_id:
            return ArchiveResult(ok=True, archived=False, reason="no_channel")

        try:
            client = self.client_for(conversation)
        except NoCredential:
            return ArchiveResult(ok=False, archived=False, reason="no_credential")

        channel_id = conversation.slack_channel_id
        reason = "archived"
        try:
            client.archive_channel(channel_id)
        except (AlreadyArchived, ChannelNotFound) as e:
            logger.info(f"Channel {channel_id} treated as archived: {e.code}")
            reason = e.code
        except SlackAPIError as e:
            logger.error(f"Failed to archive channel {channel_id}: {e}")
            return ArchiveResult(ok=False, archived=False, reason="archive_failed", error=e.code)

        conversation.slack_channel_id = None
        conversation.slack_channel_name = None
        self.db.commit()

        return ArchiveResult(ok=True, archived=True, reason=reason)

    def invite_user(self, conversation: Conversation, slack_user_id: str) -> bool:
        """Add a Slack user to the conversation's channel; being a member already counts as success."""
        if not conversation.slack_channel_id:
            return False

        client = self.client_for(conversation)
        try:
            client.invite_user(conversation.slack_channel_id, slack_user_id)
        except AlreadyInChannel:
            logger.debug(f"User {slack_user_id} already in channel {conversation.slack_channel_id}")
        return True

    def _rename_fallback(self, client: SlackClient, channel_id: str, fallback_name: str) -> str:
        try:
            return client.rename_channel(channel_id, fallback_name)
        except NameTaken as e:
            raise ChannelNameCollision(f"Both the desired name and {fallback_name} are taken") from e

    def _topic_for(self, conversation: Conversation) -> str:
        return f"{self.bot_config.name} Chat: {conversation.name}"

    def _post_init_message(self, client: SlackClient, conversation: Conversation, channel_id: str) -> None:
        document_names = [document.name for document in conversation.documents]
        try:
            client.post_message(
                channel_id,
                build_init_text(conversation.name, document_names, self.bot_config.frontend_url),
                blocks=build_init_blocks(conversation.name, document_names)
            )
        except SlackAPIError as e:
            logger.warning(f"Failed to post init message to channel {channel_id}: {e}")
