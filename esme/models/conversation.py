"""
Conversation and message models for chat history.
"""

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Boolean, BigInteger, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import time

from .base import Base, generate_id


def now_ms() -> int:
    """Wall clock in epoch milliseconds, used as the logical message timestamp."""
    return int(time.time() * 1000)


class Conversation(Base):
    """A named chat pairing attached documents with a message history."""
    
    __tablename__ = "conversations"
    
    id = Column(String, primary_key=True, default=generate_id)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    system_prompt = Column(Text, nullable=True)
    files_locked = Column(Boolean, default=False, nullable=False)
    
    # Slack channel binding; a channel belongs to at most one conversation
    slack_channel_id = Column(String, unique=True, nullable=True)
    slack_channel_name = Column(String, nullable=True)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    owner = relationship("User", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.timestamp"
    )
    documents = relationship(
        "AttachedDocument",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="AttachedDocument.created_at"
    )
    shares = relationship("ChatShare", back_populates="conversation", cascade="all, delete-orphan")
    
    def __repr__(self):
        return f"<Conversation(id={self.id}, name='{self.name}', slack_channel_id='{self.slack_channel_id}')>"


class Message(Base):
    """Individual message in a conversation."""
    
    __tablename__ = "messages"
    
    id = Column(String, primary_key=True, default=generate_id)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False)
    role = Column(String, nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    timestamp = Column(BigInteger, default=now_ms, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    
    # Slack mirror metadata
    slack_ts = Column(String, unique=True, nullable=True)  # Duplicate suppression relies on this constraint
    slack_thread_ts = Column(String, nullable=True)
    synced_to_slack = Column(Boolean, default=False, nullable=False)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        Index('ix_messages_conversation_created', 'conversation_id', 'created_at'),
    )
    
    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
    user = relationship("User")
    
    def __repr__(self):
        return f"<Message(id={self.id}, role='{self.role}', conversation_id={self.conversation_id})>"
