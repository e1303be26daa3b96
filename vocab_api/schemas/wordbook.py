"""
Pydantic schemas for wordbook API requests and responses.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class WordEntryPayload(BaseModel):
    """单词条目 (id present = existing entry to keep/update)."""
    id: Optional[UUID] = None
    word: str = Field(..., min_length=1, max_length=255)
    meaning: str = ""  # blank is stored as "-"
    ordinal: Optional[int] = Field(None, ge=0)

    class Config:
        str_strip_whitespace = True


class WordbookCreateRequest(BaseModel):
    """Create a wordbook, optionally with its initial words."""
    id: Optional[UUID] = None  # client-generated id of a book created offline
    title: str = Field(..., min_length=1, max_length=255)
    subtitle: Optional[str] = Field(None, max_length=255)
    targetPasses: Optional[int] = Field(None, ge=1, le=50)
    words: Optional[List[WordEntryPayload]] = Field(None, max_length=2000)

    class Config:
        str_strip_whitespace = True

    @field_validator("subtitle")
    @classmethod
    def blank_subtitle_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class WordbookUpdateRequest(BaseModel):
    """
    Partial wordbook update.

    ``words``, when present, replaces the whole word list (entries with an id
    are updated, entries without one are inserted, the rest are deleted).
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    subtitle: Optional[str] = Field(None, max_length=255)
    targetPasses: Optional[int] = Field(None, ge=1, le=50)
    words: Optional[List[WordEntryPayload]] = Field(None, max_length=2000)

    class Config:
        str_strip_whitespace = True

    @field_validator("subtitle")
    @classmethod
    def blank_subtitle_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class BulkImportRequest(BaseModel):
    """Entries to append to an existing wordbook."""
    entries: List[WordEntryPayload] = Field(..., min_length=1, max_length=500)


class WordEntryResponse(BaseModel):
    id: UUID
    wordbookId: UUID
    word: str
    meaning: str
    ordinal: int
    updatedAt: Optional[datetime] = None


class WordbookResponse(BaseModel):
    id: UUID
    title: str
    subtitle: Optional[str] = None
    targetPasses: int
    isTemplate: bool
    templateVersion: int
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    words: List[WordEntryResponse] = []


class WordbookEnvelope(BaseModel):
    wordbook: WordbookResponse


class WordbookListResponse(BaseModel):
    wordbooks: List[WordbookResponse]


class BulkImportResponse(BaseModel):
    addedCount: int
    duplicateWords: List[str]


class SuccessResponse(BaseModel):
    success: bool = True
