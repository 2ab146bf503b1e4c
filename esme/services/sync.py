"""
Message synchronization between conversations and their Slack channels.

Push path: internal messages are posted to the bound channel and stamped with
the resulting Slack ``ts``. Pull path: human messages posted in a bound
channel are recorded (once per ``ts``), answered with the LLM using a
server-side refreshed Google token, and the answer is posted back.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import SlackConfig
from ..errors import (
    DuplicateEvent,
    NoRefreshToken,
    SlackAPIError,
    TokenRefreshFailed,
    UnmappedChannel,
    UnmappedSender,
)
from ..models.conversation import Conversation, Message
from ..models.user import User
from .answers import AnswerPipeline
from .credentials import find_user_by_slack_id
from .google_tokens import GoogleTokenService
from .slack import SlackClientFactory, create_slack_client

logger = logging.getLogger(__name__)

# Private channels arrive as "group", public ones as "channel"
HANDLED_CHANNEL_TYPES = {"group", "channel"}

ASSISTANT_LABEL = "AI Assistant"


@dataclass
class SyncOutcome:
    status: str  # ignored, unmapped_channel, unmapped_sender, duplicate, answered, failed
    human_message_id: Optional[str] = None
    assistant_message_id: Optional[str] = None
    error: Optional[str] = None


def should_handle_event(event: Optional[Dict[str, Any]]) -> bool:
    """Only plain, un-threaded, human messages in a channel trigger an answer."""
    if not event or event.get("type") != "message":
        return False
    if event.get("subtype") or event.get("bot_id"):
        return False
    if event.get("thread_ts"):
        return False
    if event.get("channel_type") not in HANDLED_CHANNEL_TYPES:
        return False
    return bool(event.get("channel") and event.get("user") and event.get("ts") and (event.get("text") or "").strip())


def format_mirror_text(message: Message, author_name: Optional[str] = None) -> str:
    """Render an internal message for its Slack mirror."""
    if message.role == "assistant":
        return f"🤖 *{ASSISTANT_LABEL}*\n{message.content}"
    return f"👤 *{author_name or 'You'}*\n{message.content}"


def error_notice_text(error: Exception) -> str:
    if isinstance(error, NoRefreshToken):
        return (
            "⚠️ I can't read this chat's documents right now: the chat owner needs to "
            "reconnect Google in the web app (offline access is required)."
        )
    if isinstance(error, TokenRefreshFailed):
        return f"⚠️ I can't read this chat's documents right now: {error}"
    return "⚠️ Sorry, something went wrong while generating an answer. Please try again."


class MessageSynchronizer:
    """Bridges conversation messages and Slack channel messages."""

    def __init__(
        self,
        db: Session,
        slack_config: SlackConfig,
        pipeline: Optional[AnswerPipeline] = None,
        token_service: Optional[GoogleTokenService] = None,
        client_factory: SlackClientFactory = create_slack_client
    ):
        self.db = db
        self.slack_config = slack_config
        self.pipeline = pipeline
        self.token_service = token_service
        self.client_factory = client_factory

    # Push path

    def push_to_channel(self, channel_id: str, text: str, token: str, thread_ts: Optional[str] = None) -> str:
        """Post text to a channel and return the Slack ts. Raises SlackAPIError."""
        return self.client_factory(token).post_message(channel_id, text, thread_ts=thread_ts)

    def push_message(self, conversation: Conversation, message: Message, thread_ts: Optional[str] = None) -> Optional[str]:
        """
        Best-effort mirror of one message. Returns the ts, or None when the
        conversation has no channel, the owner has no Slack token, or Slack
        failed. Never raises SlackAPIError.
        """
        owner = conversation.owner
        if not conversation.slack_channel_id or owner is None or not owner.slack_access_token:
            return None

        author_name = None
        if message.user is not None:
            author_name = message.user.name or message.user.email

        try:
            ts = self.push_to_channel(
                conversation.slack_channel_id,
                format_mirror_text(message, author_name),
                owner.slack_access_token,
                thread_ts
            )
        except SlackAPIError as e:
            logger.error(f"Failed to mirror message {message.id} to channel {conversation.slack_channel_id}: {e}")
            return None

        self._stamp(message, ts, thread_ts)
        return ts

    def sync_pending_messages(self, conversation: Conversation) -> int:
        """Backfill every not-yet-mirrored message in creation order; returns how many were posted."""
        pending = self.db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.synced_to_slack.is_(False)
        ).order_by(Message.created_at.asc(), Message.timestamp.asc()).all()

        synced = 0
        for message in pending:
            if self.push_message(conversation, message):
                synced += 1

        if pending:
            logger.info(f"Backfilled {synced}/{len(pending)} message(s) to channel {conversation.slack_channel_id}")
        return synced

    # Pull path

    def handle_channel_message(self, event: Dict[str, Any]) -> SyncOutcome:
        """Record a human channel message and answer it. Never raises."""
        if not should_handle_event(event):
            return SyncOutcome("ignored")

        try:
            conversation = self._resolve_conversation(event["channel"])
            sender = self._resolve_sender(event["user"])
            human_message = self._record_inbound(conversation, sender, event)
        except UnmappedChannel:
            logger.info(f"No conversation for channel {event.get('channel')}, discarding event")
            return SyncOutcome("unmapped_channel")
        except UnmappedSender:
            logger.info(f"Slack user {event.get('user')} has no linked account, discarding event")
            return SyncOutcome("unmapped_sender")
        except DuplicateEvent:
            logger.info(f"Message {event.get('ts')} already synced, discarding redelivery")
            return SyncOutcome("duplicate")

        thread_ts = event["ts"] if self.slack_config.reply_in_thread else None

        try:
            access_token = self.token_service.get_fresh_access_token(conversation.owner_id)
            answer = self.pipeline.generate_answer(conversation, event["text"], access_token)

            assistant_message = Message(
                conversation_id=conversation.id,
                role="assistant",
                content=answer
            )
            self.db.add(assistant_message)
            self.db.commit()
            self.db.refresh(assistant_message)

            ts = self.push_to_channel(
                conversation.slack_channel_id,
                format_mirror_text(assistant_message),
                conversation.owner.slack_access_token,
                thread_ts
            )
            self._stamp(assistant_message, ts, thread_ts)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to answer message {event.get('ts')} in conversation {conversation.id}: {e}", exc_info=True)
            self._post_error_notice(conversation, thread_ts, e)
            return SyncOutcome("failed", human_message_id=human_message.id, error=str(e))

        logger.info(f"Answered Slack message {event['ts']} in conversation {conversation.id}")
        return SyncOutcome("answered", human_message_id=human_message.id, assistant_message_id=assistant_message.id)

    def _resolve_conversation(self, channel_id: str) -> Conversation:
        conversation = self.db.query(Conversation).filter(
            Conversation.slack_channel_id == channel_id
        ).first()
        if conversation is None:
            raise UnmappedChannel(channel_id)
        return conversation

    def _resolve_sender(self, slack_user_id: str) -> User:
        user = find_user_by_slack_id(self.db, slack_user_id)
        if user is None:
            raise UnmappedSender(slack_user_id)
        return user

    def _find_by_slack_ts(self, ts: str) -> Optional[Message]:
        return self.db.query(Message).filter(Message.slack_ts == ts).first()

    def _record_inbound(self, conversation: Conversation, sender: User, event: Dict[str, Any]) -> Message:
        """Persist the inbound text as a human message, exactly once per Slack ts."""
        ts = event["ts"]

        if self._find_by_slack_ts(ts) is not None:
            raise DuplicateEvent(ts)

        message = Message(
            conversation_id=conversation.id,
            role="user",
            content=event["text"],
            user_id=sender.id,
            slack_ts=ts,
            synced_to_slack=True  # Already present in Slack
        )
        self.db.add(message)
        try:
            self.db.commit()
        except IntegrityError as e:
            # A concurrent delivery of the same event won the insert
            self.db.rollback()
            raise DuplicateEvent(ts) from e

        self.db.refresh(message)
        return message

    def _stamp(self, message: Message, ts: str, thread_ts: Optional[str]) -> None:
        message.slack_ts = ts
        message.slack_thread_ts = thread_ts
        message.synced_to_slack = True
        self.db.commit()

    def _post_error_notice(self, conversation: Conversation, thread_ts: Optional[str], error: Exception) -> None:
        owner = conversation.owner
        if not conversation.slack_channel_id or owner is None or not owner.slack_access_token:
            return
        try:
            self.push_to_channel(conversation.slack_channel_id, error_notice_text(error), owner.slack_access_token, thread_ts)
        except SlackAPIError as e:
            logger.error(f"Failed to post error notice to channel {conversation.slack_channel_id}: {e}")
