"""
User model with linked Slack and Google credentials.
"""

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base, generate_id


class User(Base):
    """Web app user, keyed by email, optionally linked to a Slack identity."""
    
    __tablename__ = "users"
    
    id = Column(String, primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    
    # Slack identity (cleared on disconnect)
    slack_user_id = Column(String, unique=True, index=True, nullable=True)
    slack_team_id = Column(String, nullable=True)
    slack_access_token = Column(Text, nullable=True)  # Bot token from the OAuth install
    
    # Google OAuth pair; the access token is short-lived
    google_access_token = Column(Text, nullable=True)
    google_refresh_token = Column(Text, nullable=True)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    conversations = relationship("Conversation", back_populates="owner", cascade="all, delete-orphan")
    
    @property
    def has_slack(self) -> bool:
        return bool(self.slack_access_token)
    
    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', slack_user_id='{self.slack_user_id}')>"
