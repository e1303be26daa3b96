"""
Section and daily progress service.
Stores per-wordbook page/pass progress and per-day word counts, keyed by
(user, wordbook) and (user, date).
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocab_api.errors import HttpError
from vocab_api.models.progress import DailyProgress, SectionProgress
from vocab_api.models.wordbook import Wordbook
from vocab_api.schemas.progress import (
    DailyProgressRecord,
    SectionProgressRecord,
    parse_progress_date,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_date_param(value: Optional[str], label: str) -> Optional[str]:
    """Validate an optional ``yyyy-MM-dd`` query parameter (400 otherwise)."""
    if not value:
        return None
    try:
        return parse_progress_date(value)
    except ValueError:
        raise HttpError(400, f"{label} 格式应为 yyyy-MM-dd")


class ProgressService:
    """Section and daily progress reads/upserts."""

    def list_sections(
        self,
        db: Session,
        user_id: UUID,
        wordbook_id: Optional[UUID] = None
    ) -> List[SectionProgressRecord]:
        query = (
            db.query(SectionProgress)
            .filter(SectionProgress.user_id == user_id)
            .order_by(SectionProgress.updated_at.desc())
        )
        if wordbook_id is not None:
            query = query.filter(SectionProgress.wordbook_id == wordbook_id)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            raise HttpError(500, "读取学习进度失败", str(e))

        return [
            SectionProgressRecord(
                wordbookId=row.wordbook_id,
                completedPages=row.completed_pages,
                completedPasses=row.completed_passes,
                updatedAt=row.updated_at
            )
            for row in rows
        ]

    def upsert_sections(self, db: Session, user_id: UUID, records: List[SectionProgressRecord]) -> None:
        """
        Upsert progress keyed by (user, wordbook).

        Every referenced wordbook must be owned by the caller or be a template;
        otherwise the whole batch is rejected before any write.
        """
        latest = {record.wordbookId: record for record in records}
        self._assert_wordbook_access(db, user_id, list(latest))

        try:
            for wordbook_id, record in latest.items():
                row = db.get(SectionProgress, (user_id, wordbook_id))
                if row is None:
                    row = SectionProgress(user_id=user_id, wordbook_id=wordbook_id)
                    db.add(row)
                row.completed_pages = record.completedPages
                row.completed_passes = record.completedPasses
                row.updated_at = record.updatedAt or utc_now()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "保存学习进度失败", str(e))

        logger.info(f"📊 Saved progress for {len(latest)} wordbooks (user {user_id})")

    def list_daily(
        self,
        db: Session,
        user_id: UUID,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[DailyProgressRecord]:
        start = check_date_param(start_date, "startDate")
        end = check_date_param(end_date, "endDate")

        query = (
            db.query(DailyProgress)
            .filter(DailyProgress.user_id == user_id)
            .order_by(DailyProgress.progress_date.asc())
        )
        # yyyy-MM-dd strings order lexicographically like dates
        if start:
            query = query.filter(DailyProgress.progress_date >= start)
        if end:
            query = query.filter(DailyProgress.progress_date <= end)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            raise HttpError(500, "读取每日进度失败", str(e))

        return [
            DailyProgressRecord(
                date=row.progress_date,
                wordsLearned=row.words_learned,
                updatedAt=row.updated_at
            )
            for row in rows
        ]

    def upsert_daily(self, db: Session, user_id: UUID, records: List[DailyProgressRecord]) -> None:
        """Upsert daily totals keyed by (user, date); the stored value is replaced."""
        latest = {record.date: record for record in records}
        try:
            for progress_date, record in latest.items():
                row = db.get(DailyProgress, (user_id, progress_date))
                if row is None:
                    row = DailyProgress(user_id=user_id, progress_date=progress_date)
                    db.add(row)
                row.words_learned = record.wordsLearned
                row.updated_at = record.updatedAt or utc_now()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "保存每日进度失败", str(e))

    @staticmethod
    def _assert_wordbook_access(db: Session, user_id: UUID, wordbook_ids: List[UUID]) -> None:
        try:
            rows = (
                db.query(Wordbook.id, Wordbook.owner_id, Wordbook.is_template)
                .filter(Wordbook.id.in_(wordbook_ids))
                .all()
            )
        except SQLAlchemyError as e:
            raise HttpError(500, "校验词书归属失败", str(e))

        allowed = {row.id for row in rows if row.owner_id == user_id or row.is_template}
        if len(allowed) != len(set(wordbook_ids)):
            raise HttpError(403, "包含无权访问的词书，已终止保存")
