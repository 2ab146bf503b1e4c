"""
Chat sharing: point-in-time snapshots plus Slack channel invites.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Any, List
import logging

from ..database import get_session
from ..errors import DocumentFetchError, NoCredential, SlackAPIError
from ..models.conversation import Conversation
from ..models.share import ChatShare
from ..models.user import User
from ..services.channels import ChannelDirectory
from ..services.credentials import find_user_by_email
from ..services.sync import MessageSynchronizer
from .deps import get_bearer_token, get_current_user, get_directory, get_synchronizer

logger = logging.getLogger(__name__)

shares_router = APIRouter()


class ShareRequest(BaseModel):
    email: str


def build_snapshot(conversation: Conversation, fetcher) -> Dict[str, Any]:
    """Copy of the conversation with document text embedded, so recipients need no Drive access."""
    documents: List[Dict[str, Any]] = []
    for document in conversation.documents:
        try:
            fetched = fetcher.fetch(document.drive_file_id, document.mime_type)
            documents.append({
                "drive_file_id": document.drive_file_id,
                "name": fetched.name or document.name,
                "mime_type": fetched.mime_type or document.mime_type,
                "content": fetched.content or ""
            })
        except DocumentFetchError as e:
            logger.warning(f"Snapshot of {document.drive_file_id} failed: {e}")
            documents.append({
                "drive_file_id": document.drive_file_id,
                "name": document.name,
                "mime_type": document.mime_type or "error",
                "content": f"Error reading file: {e}"
            })

    return {
        "name": conversation.name,
        "system_prompt": conversation.system_prompt,
        "messages": [
            {"role": m.role, "content": m.content, "timestamp": m.timestamp}
            for m in conversation.messages
        ],
        "documents": documents,
        "shared_at": datetime.utcnow().isoformat(),
        "original_chat_id": conversation.id
    }


@shares_router.post("/{chat_id}/shares", status_code=201)
def share_chat(
    chat_id: str,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    access_token: str = Depends(get_bearer_token),
    db: Session = Depends(get_session),
    directory: ChannelDirectory = Depends(get_directory),
    synchronizer: MessageSynchronizer = Depends(get_synchronizer)
):
    """Share a snapshot with an email; a Slack-linked recipient is also added to the channel."""
    email = body.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email is required")
    if email == user.email.lower():
        raise HTTPException(status_code=400, detail="Cannot share a chat with yourself")

    conversation = db.query(Conversation).filter(
        Conversation.id == chat_id,
        Conversation.owner_id == user.id
    ).first()
    if conversation is None:
        raise HTTPException(status_code=404, detail="Chat not found")

    fetcher = synchronizer.pipeline.fetcher_factory(access_token)
    snapshot = build_snapshot(conversation, fetcher)

    share = db.query(ChatShare).filter(
        ChatShare.conversation_id == conversation.id,
        ChatShare.shared_with_email == email
    ).first()
    if share:
        share.snapshot = snapshot
        logger.info(f"Refreshed share {share.id} of conversation {conversation.id}")
    else:
        share = ChatShare(
            conversation_id=conversation.id,
            shared_with_email=email,
            created_by_user_id=user.id,
            snapshot=snapshot
        )
        db.add(share)
        logger.info(f"Shared conversation {conversation.id} with {email}")
    db.commit()
    db.refresh(share)

    recipient = find_user_by_email(db, email)
    if recipient is not None and recipient.slack_user_id and conversation.slack_channel_id:
        try:
            directory.invite_user(conversation, recipient.slack_user_id)
            synchronizer.push_to_channel(
                conversation.slack_channel_id,
                f"✨ *{recipient.name or recipient.email}* was added to this chat!",
                user.slack_access_token
            )
            share.slack_synced = True
            db.commit()
        except (NoCredential, SlackAPIError) as e:
            logger.error(f"Error adding {email} to Slack channel {conversation.slack_channel_id}: {e}")

    return {
        "share": {
            "id": share.id,
            "chat_id": conversation.id,
            "shared_with_email": share.shared_with_email,
            "slack_synced": share.slack_synced
        }
    }
