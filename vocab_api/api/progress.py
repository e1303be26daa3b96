"""
API endpoints for section (per-wordbook) and daily progress.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vocab_api.auth import AuthContext, get_current_user
from vocab_api.database import get_db
from vocab_api.schemas.progress import (
    DailyProgressListResponse,
    DailyProgressUpsertRequest,
    SectionProgressListResponse,
    SectionProgressUpsertRequest,
)
from vocab_api.schemas.wordbook import SuccessResponse
from vocab_api.services.progress_service import ProgressService

router = APIRouter(prefix="/api/progress", tags=["Progress"])

progress_service = ProgressService()


@router.get("/sections", response_model=SectionProgressListResponse)
async def list_section_progress(
    wordbookId: Optional[UUID] = Query(None),
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List page/pass progress, most recently updated first."""
    records = progress_service.list_sections(db, user.user_id, wordbook_id=wordbookId)
    return SectionProgressListResponse(records=records)


@router.post("/sections", response_model=SuccessResponse)
async def upsert_section_progress(
    request: SectionProgressUpsertRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upsert progress keyed by (user, wordbookId)."""
    progress_service.upsert_sections(db, user.user_id, request.records)
    return SuccessResponse()


@router.get("/daily", response_model=DailyProgressListResponse)
async def list_daily_progress(
    startDate: Optional[str] = Query(None, description="yyyy-MM-dd, inclusive"),
    endDate: Optional[str] = Query(None, description="yyyy-MM-dd, inclusive"),
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List daily word counts in date order."""
    records = progress_service.list_daily(db, user.user_id, start_date=startDate, end_date=endDate)
    return DailyProgressListResponse(records=records)


@router.post("/daily", response_model=SuccessResponse)
async def upsert_daily_progress(
    request: DailyProgressUpsertRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upsert daily word counts keyed by (user, date)."""
    progress_service.upsert_daily(db, user.user_id, request.records)
    return SuccessResponse()
