"""
SQLAlchemy ORM model for word/meaning masking state.
"""
from sqlalchemy import Column, Boolean, ForeignKey, DateTime, Uuid
from sqlalchemy.sql import func
from vocab_api.database import Base


class WordVisibility(Base):
    """Whether a user sees the word and/or the meaning of one entry."""
    __tablename__ = "word_visibility"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    word_entry_id = Column(Uuid(as_uuid=True), ForeignKey("word_entries.id", ondelete="CASCADE"), primary_key=True)

    show_word = Column(Boolean, nullable=False, default=True)
    show_meaning = Column(Boolean, nullable=False, default=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
