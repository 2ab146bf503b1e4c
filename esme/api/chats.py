"""
Conversation endpoints used by the web app.

Opening a conversation lazily creates its Slack channel and backfills
messages that were never mirrored; renaming and deleting are mirrored onto
the channel. Slack problems never block the conversation operation itself.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
import logging

from ..database import get_session
from ..errors import NoCredential, SlackAPIError
from ..models.conversation import Conversation
from ..models.document import AttachedDocument
from ..models.user import User
from ..services.channels import ChannelDirectory
from ..services.lifecycle import LifecycleCoordinator
from ..services.sync import MessageSynchronizer
from .deps import get_current_user, get_directory, get_lifecycle, get_synchronizer

logger = logging.getLogger(__name__)

chats_router = APIRouter()


class DocumentIn(BaseModel):
    drive_file_id: str
    name: str
    mime_type: Optional[str] = None


class ChatCreate(BaseModel):
    name: str = Field(default="New Chat")
    system_prompt: Optional[str] = None
    documents: List[DocumentIn] = Field(default_factory=list)


class ChatUpdate(BaseModel):
    name: Optional[str] = None
    system_prompt: Optional[str] = None
    files_locked: Optional[bool] = None


def serialize_conversation(conversation: Conversation, include_messages: bool = False) -> Dict[str, Any]:
    data = {
        "id": conversation.id,
        "name": conversation.name,
        "system_prompt": conversation.system_prompt,
        "files_locked": conversation.files_locked,
        "slack_channel_id": conversation.slack_channel_id,
        "slack_channel_name": conversation.slack_channel_name,
        "documents": [
            {"drive_file_id": d.drive_file_id, "name": d.name, "mime_type": d.mime_type}
            for d in conversation.documents
        ],
    }
    if include_messages:
        data["messages"] = [
            {
                "id": m.id,
                "role": m.role,
                "content": m.content,
                "timestamp": m.timestamp,
                "synced_to_slack": m.synced_to_slack,
            }
            for m in conversation.messages
        ]
    return data


def load_owned_conversation(db: Session, chat_id: str, user: User) -> Conversation:
    conversation = db.query(Conversation).filter(
        Conversation.id == chat_id,
        Conversation.owner_id == user.id
    ).first()
    if conversation is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return conversation


@chats_router.get("")
def list_chats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    chats = db.query(Conversation).filter(
        Conversation.owner_id == user.id
    ).order_by(Conversation.updated_at.desc()).all()
    return {"chats": [serialize_conversation(c) for c in chats]}


@chats_router.post("", status_code=201)
def create_chat(
    body: ChatCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session)
):
    conversation = Conversation(
        owner_id=user.id,
        name=body.name.strip() or "New Chat",
        system_prompt=body.system_prompt
    )
    for document in body.documents:
        conversation.documents.append(AttachedDocument(
            drive_file_id=document.drive_file_id,
            name=document.name,
            mime_type=document.mime_type
        ))
    db.add(conversation)
    db.commit()
    db.refresh(conversation)

    logger.info(f"Created conversation {conversation.id} for user {user.id}")
    return {"chat": serialize_conversation(conversation)}


@chats_router.get("/{chat_id}")
def get_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    directory: ChannelDirectory = Depends(get_directory),
    synchronizer: MessageSynchronizer = Depends(get_synchronizer)
):
    """Return the conversation; bind its Slack channel first when the owner has Slack."""
    conversation = load_owned_conversation(db, chat_id, user)

    if user.slack_access_token:
        try:
            directory.ensure_channel(conversation)
            synchronizer.sync_pending_messages(conversation)
        except (NoCredential, SlackAPIError) as e:
            logger.warning(f"Slack sync skipped for conversation {conversation.id}: {e}")

    db.refresh(conversation)
    return {"chat": serialize_conversation(conversation, include_messages=True)}


@chats_router.patch("/{chat_id}")
def update_chat(
    chat_id: str,
    body: ChatUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle)
):
    conversation = load_owned_conversation(db, chat_id, user)
    old_name = conversation.name

    if body.name is not None:
        if not body.name.strip():
            raise HTTPException(status_code=400, detail="Name cannot be empty")
        conversation.name = body.name.strip()
    if body.system_prompt is not None:
        conversation.system_prompt = body.system_prompt
    if body.files_locked is not None:
        conversation.files_locked = body.files_locked

    db.commit()
    db.refresh(conversation)

    rename_result = lifecycle.on_rename(conversation, old_name)

    response = {"chat": serialize_conversation(conversation)}
    if rename_result is not None:
        response["slack"] = {
            "ok": rename_result.ok,
            "reason": rename_result.reason,
            "channel_name": rename_result.final_name
        }
    return response


@chats_router.delete("/{chat_id}")
def delete_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle)
):
    conversation = load_owned_conversation(db, chat_id, user)

    archive_result = lifecycle.on_delete(conversation)

    db.delete(conversation)
    db.commit()
    logger.info(f"Deleted conversation {chat_id}")

    response = {"success": True}
    if archive_result is not None:
        response["slack"] = {"ok": archive_result.ok, "reason": archive_result.reason}
    return response
