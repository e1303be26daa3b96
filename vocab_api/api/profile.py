"""
API endpoints for the user profile.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vocab_api.auth import AuthContext, get_current_user
from vocab_api.database import get_db
from vocab_api.schemas.profile import ProfileResponse, ProfileUpdateRequest
from vocab_api.services.profile_service import ProfileService

router = APIRouter(prefix="/api/profile", tags=["Profile"])

profile_service = ProfileService()


@router.get("", response_model=ProfileResponse)
async def get_profile(
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Profile of the caller, defaults applied when none is stored."""
    return ProfileResponse(profile=profile_service.get_profile(db, user.user_id))


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return ProfileResponse(profile=profile_service.update_profile(db, user.user_id, request))
