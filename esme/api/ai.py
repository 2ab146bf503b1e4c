"""
Interactive answer endpoint for the web app.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..database import get_session
from ..errors import LLMServiceError
from ..models.conversation import Conversation, Message
from ..models.user import User
from ..services.answers import AnswerPipeline
from ..services.sync import MessageSynchronizer
from .deps import get_bearer_token, get_current_user, get_pipeline, get_synchronizer

logger = logging.getLogger(__name__)

ai_router = APIRouter()


class PromptRequest(BaseModel):
    chat_id: str
    user_prompt: str
    system_prompt: Optional[str] = None


@ai_router.post("/prompt")
def prompt(
    body: PromptRequest,
    user: User = Depends(get_current_user),
    access_token: str = Depends(get_bearer_token),
    db: Session = Depends(get_session),
    pipeline: AnswerPipeline = Depends(get_pipeline),
    synchronizer: MessageSynchronizer = Depends(get_synchronizer)
):
    """
    Answer a question typed in the web app.

    The user's message is stored (and mirrored) before the LLM is called, the
    assistant's answer after, so the channel shows them in that order.
    """
    if not body.user_prompt.strip():
        raise HTTPException(status_code=400, detail="user_prompt is required")

    conversation = db.query(Conversation).filter(
        Conversation.id == body.chat_id,
        Conversation.owner_id == user.id
    ).first()
    if conversation is None:
        raise HTTPException(status_code=404, detail="Chat not found")

    user_message = Message(
        conversation_id=conversation.id,
        role="user",
        content=body.user_prompt,
        user_id=user.id
    )
    db.add(user_message)
    db.commit()
    db.refresh(user_message)
    synchronizer.push_message(conversation, user_message)

    try:
        answer = pipeline.generate_answer(conversation, body.user_prompt, access_token, body.system_prompt)
    except LLMServiceError as e:
        logger.error(f"Answer generation failed for conversation {conversation.id}: {e}")
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to generate AI response", "details": str(e)}
        )

    assistant_message = Message(
        conversation_id=conversation.id,
        role="assistant",
        content=answer
    )
    db.add(assistant_message)
    db.commit()
    db.refresh(assistant_message)
    synchronizer.push_message(conversation, assistant_message)

    return {
        "ai_response": answer,
        "user_message_id": user_message.id,
        "assistant_message_id": assistant_message.id
    }
