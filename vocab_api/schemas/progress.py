"""
Pydantic schemas for section and daily progress.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def parse_progress_date(value: str) -> str:
    """
    Check a ``yyyy-MM-dd`` calendar date string.

    Raises:
        ValueError: If the string is not exactly that shape or not a real date
    """
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        raise ValueError("日期格式应为 yyyy-MM-dd")
    # strptime accepts unpadded fields such as 2024-1-5
    if parsed.strftime(DATE_FORMAT) != value:
        raise ValueError("日期格式应为 yyyy-MM-dd")
    return value


class SectionProgressRecord(BaseModel):
    wordbookId: UUID
    completedPages: int = Field(..., ge=0)
    completedPasses: int = Field(..., ge=0)
    updatedAt: Optional[datetime] = None


class SectionProgressUpsertRequest(BaseModel):
    records: List[SectionProgressRecord] = Field(..., min_length=1, max_length=200)


class SectionProgressListResponse(BaseModel):
    records: List[SectionProgressRecord]


class DailyProgressRecord(BaseModel):
    date: str
    wordsLearned: int = Field(..., ge=0)
    updatedAt: Optional[datetime] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return parse_progress_date(value)


class DailyProgressUpsertRequest(BaseModel):
    records: List[DailyProgressRecord] = Field(..., min_length=1, max_length=200)


class DailyProgressListResponse(BaseModel):
    records: List[DailyProgressRecord]
