"""
Pydantic schemas for word visibility (masking) state.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class VisibilityRecord(BaseModel):
    wordEntryId: UUID
    showWord: bool
    showMeaning: bool
    updatedAt: Optional[datetime] = None


class VisibilityUpsertRequest(BaseModel):
    records: List[VisibilityRecord] = Field(..., min_length=1, max_length=500)


class VisibilityListResponse(BaseModel):
    records: List[VisibilityRecord]
