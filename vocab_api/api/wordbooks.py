"""
API endpoints for wordbooks and their word entries.
Handles routing and validation only - business logic is in WordbookService.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import logging

from vocab_api.auth import AuthContext, get_current_user
from vocab_api.database import get_db
from vocab_api.schemas.wordbook import (
    BulkImportRequest,
    BulkImportResponse,
    SuccessResponse,
    WordbookCreateRequest,
    WordbookEnvelope,
    WordbookListResponse,
    WordbookUpdateRequest,
)
from vocab_api.services.wordbook_service import WordbookService

router = APIRouter(prefix="/api/wordbooks", tags=["Wordbooks"])
logger = logging.getLogger(__name__)

wordbook_service = WordbookService()


@router.get("", response_model=WordbookListResponse)
async def list_wordbooks(
    includeTemplates: bool = Query(True, description="Append shared template wordbooks"),
    limit: Optional[int] = Query(None, ge=1, description="Rows per group, capped at 500"),
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the caller's wordbooks (and templates unless ``includeTemplates=false``).

    Returns:
        {"wordbooks": [...]} with entries sorted by ordinal
    """
    wordbooks = wordbook_service.list_wordbooks(
        db,
        user.user_id,
        include_templates=includeTemplates,
        limit=limit
    )
    return WordbookListResponse(wordbooks=wordbooks)


@router.post("", response_model=WordbookEnvelope, status_code=status.HTTP_201_CREATED)
async def create_wordbook(
    request: WordbookCreateRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a wordbook owned by the caller.

    Example:
        >>> POST /api/wordbooks
        >>> {"title": "CET-4", "targetPasses": 2, "words": [{"word": "abandon", "meaning": "放弃"}]}
        >>> Response 201: {"wordbook": {...}}
    """
    wordbook = wordbook_service.create_wordbook(db, user.user_id, request)
    return WordbookEnvelope(wordbook=wordbook)


@router.get("/{wordbook_id}", response_model=WordbookEnvelope)
async def get_wordbook(
    wordbook_id: UUID,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Read one wordbook the caller owns, or any template."""
    return WordbookEnvelope(wordbook=wordbook_service.get_wordbook(db, user.user_id, wordbook_id))


@router.patch("/{wordbook_id}", response_model=WordbookEnvelope)
async def update_wordbook(
    wordbook_id: UUID,
    request: WordbookUpdateRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Partially update a wordbook.

    Sending ``words`` replaces the full word list (update by id, insert new,
    delete missing).
    """
    wordbook = wordbook_service.update_wordbook(db, user.user_id, wordbook_id, request)
    return WordbookEnvelope(wordbook=wordbook)


@router.delete("/{wordbook_id}", response_model=SuccessResponse)
async def delete_wordbook(
    wordbook_id: UUID,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Permanently delete a wordbook the caller owns."""
    wordbook_service.delete_wordbook(db, user.user_id, wordbook_id)
    return SuccessResponse()


@router.post(
    "/{wordbook_id}/entries",
    response_model=BulkImportResponse,
    status_code=status.HTTP_201_CREATED
)
async def import_entries(
    wordbook_id: UUID,
    request: BulkImportRequest,
    user: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Bulk import entries into an owned wordbook.

    Returns:
        {"addedCount": int, "duplicateWords": [str]}
    """
    added, duplicates = wordbook_service.import_entries(db, user.user_id, wordbook_id, request.entries)
    return BulkImportResponse(addedCount=added, duplicateWords=duplicates)
