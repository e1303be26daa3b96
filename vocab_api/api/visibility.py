"""
API endpoints for word visibility (masking) state.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vocab_api.auth import AuthContext, get_current_user
from vocab_api.database import get_db
from vocab_api.schemas.visibility import VisibilityListResponse, VisibilityUpsertRequest
from vocab_api.schemas.wordbook import SuccessResponse
from vocab_api.services.visibility_service import VisibilityService

router = APIRouter(prefix="/api/visibility", tags=["Visibility"])

visibility_service = VisibilityService()


@router.get("", response_model=VisibilityListResponse)
async def list_visibility(
    wordbookId: Optional[UUID] = Query(None, description="Only entries of this wordbook"),
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    records = visibility_service.list_records(db, user.user_id, wordbook_id=wordbookId)
    return VisibilityListResponse(records=records)


@router.post("", response_model=SuccessResponse)
async def upsert_visibility(
    request: VisibilityUpsertRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upsert visibility for a batch of entries.

    The batch is all-or-nothing: any entry outside the caller's own wordbooks
    and the templates rejects it with 403.
    """
    visibility_service.upsert_records(db, user.user_id, request.records)
    return SuccessResponse()
