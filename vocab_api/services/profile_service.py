"""
User profile service.
"""
import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocab_api.errors import HttpError
from vocab_api.models.profile import UserProfile
from vocab_api.schemas.profile import ProfileData, ProfileUpdateRequest

logger = logging.getLogger(__name__)

DEFAULT_NAME = "学习者"
DEFAULT_EMOJI = "🎓"


class ProfileService:
    """Profile read with defaults, partial update as upsert."""

    def get_profile(self, db: Session, user_id: UUID) -> ProfileData:
        try:
            row = db.get(UserProfile, user_id)
        except SQLAlchemyError as e:
            raise HttpError(500, "读取用户信息失败", str(e))

        if row is None:
            return ProfileData(displayName=DEFAULT_NAME, avatarEmoji=DEFAULT_EMOJI, updatedAt=None)
        return ProfileData(
            displayName=row.display_name,
            avatarEmoji=row.avatar_emoji,
            updatedAt=row.updated_at
        )

    def update_profile(self, db: Session, user_id: UUID, payload: ProfileUpdateRequest) -> ProfileData:
        try:
            row = db.get(UserProfile, user_id)
            if row is None:
                row = UserProfile(user_id=user_id, display_name=DEFAULT_NAME, avatar_emoji=DEFAULT_EMOJI)
                db.add(row)
            if payload.displayName is not None:
                row.display_name = payload.displayName
            if payload.avatarEmoji:
                row.avatar_emoji = payload.avatarEmoji
            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "保存用户信息失败", str(e))

        return ProfileData(
            displayName=row.display_name,
            avatarEmoji=row.avatar_emoji,
            updatedAt=row.updated_at
        )
