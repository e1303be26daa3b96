"""
SQLAlchemy ORM models for learning progress.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Uuid
from sqlalchemy.sql import func
from vocab_api.database import Base


class SectionProgress(Base):
    """Per-user page/pass progress through one wordbook."""
    __tablename__ = "section_progress"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    wordbook_id = Column(Uuid(as_uuid=True), ForeignKey("wordbooks.id", ondelete="CASCADE"), primary_key=True)

    completed_pages = Column(Integer, nullable=False, default=0)
    completed_passes = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DailyProgress(Base):
    """Words learned by a user on one calendar day (``yyyy-MM-dd``)."""
    __tablename__ = "daily_progress"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    progress_date = Column(String(10), primary_key=True)

    words_learned = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
