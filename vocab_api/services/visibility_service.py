"""
Word visibility service.
Upserts per-user masking state after an all-or-nothing ownership check.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocab_api.errors import HttpError
from vocab_api.models.visibility import WordVisibility
from vocab_api.models.wordbook import Wordbook, WordEntry
from vocab_api.schemas.visibility import VisibilityRecord

logger = logging.getLogger(__name__)


class VisibilityService:
    """Visibility (masking) reads and batched upserts."""

    def list_records(
        self,
        db: Session,
        user_id: UUID,
        wordbook_id: Optional[UUID] = None
    ) -> List[VisibilityRecord]:
        query = db.query(WordVisibility).filter(WordVisibility.user_id == user_id)
        if wordbook_id is not None:
            query = (
                query.join(WordEntry, WordEntry.id == WordVisibility.word_entry_id)
                .filter(WordEntry.wordbook_id == wordbook_id)
            )

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            raise HttpError(500, "读取遮挡设置失败", str(e))

        return [
            VisibilityRecord(
                wordEntryId=row.word_entry_id,
                showWord=row.show_word,
                showMeaning=row.show_meaning,
                updatedAt=row.updated_at
            )
            for row in rows
        ]

    def upsert_records(self, db: Session, user_id: UUID, records: List[VisibilityRecord]) -> None:
        """
        Upsert visibility keyed by (user, word entry).

        Every entry must belong to a wordbook the caller owns or a template.
        One inaccessible (or unknown) entry rejects the entire batch with 403
        before anything is written.
        """
        latest = {record.wordEntryId: record for record in records}
        entry_ids = list(latest)

        try:
            accessible = (
                db.query(WordEntry.id)
                .join(Wordbook, Wordbook.id == WordEntry.wordbook_id)
                .filter(WordEntry.id.in_(entry_ids))
                .filter((Wordbook.owner_id == user_id) | (Wordbook.is_template.is_(True)))
                .all()
            )
        except SQLAlchemyError as e:
            raise HttpError(500, "校验单词归属失败", str(e))

        allowed = {row.id for row in accessible}
        if len(allowed) != len(entry_ids):
            denied = [str(entry_id) for entry_id in entry_ids if entry_id not in allowed]
            logger.warning(f"⚠️ Visibility batch rejected for user {user_id}: {len(denied)} inaccessible entries")
            raise HttpError(403, "包含无权访问的单词，已终止保存", denied)

        now = datetime.now(timezone.utc)
        try:
            for entry_id, record in latest.items():
                row = db.get(WordVisibility, (user_id, entry_id))
                if row is None:
                    row = WordVisibility(user_id=user_id, word_entry_id=entry_id)
                    db.add(row)
                row.show_word = record.showWord
                row.show_meaning = record.showMeaning
                row.updated_at = record.updatedAt or now
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "保存遮挡设置失败", str(e))
