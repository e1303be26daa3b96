"""
Pydantic schemas for the user profile.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileUpdateRequest(BaseModel):
    displayName: Optional[str] = Field(None, min_length=1, max_length=60)
    avatarEmoji: Optional[str] = Field(None, max_length=8)

    class Config:
        str_strip_whitespace = True


class ProfileData(BaseModel):
    displayName: str
    avatarEmoji: str
    updatedAt: Optional[datetime] = None


class ProfileResponse(BaseModel):
    profile: ProfileData
