"""
User profile model.
"""
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from vocab_api.database import Base


class UserProfile(Base):
    """Display name and avatar emoji, one row per user."""
    __tablename__ = "user_profiles"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)

    display_name = Column(String(60), nullable=False)
    avatar_emoji = Column(String(8), nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
