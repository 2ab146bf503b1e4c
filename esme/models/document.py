"""
Attached document references.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base, generate_id


class AttachedDocument(Base):
    """A Google Drive file attached to a conversation."""
    
    __tablename__ = "conversation_documents"
    
    id = Column(String, primary_key=True, default=generate_id)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False, index=True)
    drive_file_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)  # Cached display name
    mime_type = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        UniqueConstraint('conversation_id', 'drive_file_id', name='uq_conversation_documents_file'),
    )
    
    conversation = relationship("Conversation", back_populates="documents")
    
    def __repr__(self):
        return f"<AttachedDocument(id={self.id}, drive_file_id='{self.drive_file_id}')>"
