"""
SQLAlchemy ORM models for wordbooks and their word entries.
"""
from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, DateTime, Index, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from vocab_api.database import Base
import uuid


class Wordbook(Base):
    """
    Wordbook model.

    Owned by a single user, or a shared read-only template when
    ``is_template`` is set (``owner_id`` is then usually NULL).
    """
    __tablename__ = "wordbooks"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), nullable=True, index=True)  # No FK - users live in the identity provider

    title = Column(String(255), nullable=False)
    subtitle = Column(String(255), nullable=True)
    target_passes = Column(Integer, nullable=False, default=1)
    is_template = Column(Boolean, nullable=False, default=False)
    template_version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    entries = relationship(
        "WordEntry",
        back_populates="wordbook",
        order_by="WordEntry.ordinal",
        cascade="all, delete-orphan",
        passive_deletes=True
    )


class WordEntry(Base):
    """Single word entry; ``lemma`` is the word and ``definition`` its meaning."""
    __tablename__ = "word_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wordbook_id = Column(Uuid(as_uuid=True), ForeignKey("wordbooks.id", ondelete="CASCADE"), nullable=False)

    lemma = Column(String(255), nullable=False)
    definition = Column(Text, nullable=False)
    ordinal = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    wordbook = relationship("Wordbook", back_populates="entries")

    __table_args__ = (
        Index("idx_word_entries_wordbook", "wordbook_id", "ordinal"),
    )
