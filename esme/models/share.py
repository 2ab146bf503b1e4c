"""
Share snapshot model.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base, generate_id


class ChatShare(Base):
    """Point-in-time copy of a conversation shared with a recipient email."""
    
    __tablename__ = "chat_shares"
    
    id = Column(String, primary_key=True, default=generate_id)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False, index=True)
    shared_with_email = Column(String, nullable=False, index=True)
    created_by_user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    snapshot = Column(JSON, nullable=False)  # name, system_prompt, messages, documents with embedded text
    slack_synced = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    conversation = relationship("Conversation", back_populates="shares")
    created_by = relationship("User")
    
    def __repr__(self):
        return f"<ChatShare(id={self.id}, shared_with_email='{self.shared_with_email}')>"
