"""
Wordbook repository service.
Handles wordbook/entry CRUD, ownership checks, import deduplication and the
three-phase full word-list replacement.
"""
import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import func

from vocab_api.config import settings
from vocab_api.core.mappers import map_wordbook
from vocab_api.core.text_utils import CleanEntry, deduplicate_words
from vocab_api.errors import HttpError
from vocab_api.models.wordbook import Wordbook, WordEntry
from vocab_api.schemas.wordbook import (
    WordbookCreateRequest,
    WordbookResponse,
    WordbookUpdateRequest,
    WordEntryPayload,
)

logger = logging.getLogger(__name__)


def clamp_limit(limit: Optional[int]) -> int:
    """Requested page size, defaulting to API_PAGE_SIZE and capped at MAX_PAGE_SIZE."""
    if limit is None:
        limit = settings.API_PAGE_SIZE
    return max(1, min(limit, settings.MAX_PAGE_SIZE))


class WordbookService:
    """
    Wordbook business logic.

    Responsibilities:
    - Ownership/template access rules
    - Word deduplication on create, import and replace
    - Database writes with storage errors mapped to HTTP 500

    Usage:
        >>> service = WordbookService()
        >>> book = service.create_wordbook(db, user_id, payload)
        >>> added, duplicates = service.import_entries(db, user_id, book.id, entries)
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_wordbooks(
        self,
        db: Session,
        user_id: UUID,
        include_templates: bool = True,
        limit: Optional[int] = None
    ) -> List[WordbookResponse]:
        """
        List the caller's own wordbooks (newest first), then templates by title.

        Args:
            db: Database session
            user_id: Caller
            include_templates: Whether to append shared templates
            limit: Max rows per group, capped at MAX_PAGE_SIZE

        Returns:
            Wordbooks with their entries, deduplicated by id
        """
        limit = clamp_limit(limit)
        try:
            own = (
                db.query(Wordbook)
                .options(selectinload(Wordbook.entries))
                .filter(Wordbook.owner_id == user_id)
                .order_by(Wordbook.updated_at.desc())
                .limit(limit)
                .all()
            )
            templates = []
            if include_templates:
                templates = (
                    db.query(Wordbook)
                    .options(selectinload(Wordbook.entries))
                    .filter(Wordbook.is_template.is_(True))
                    .order_by(Wordbook.title.asc())
                    .limit(limit)
                    .all()
                )
        except SQLAlchemyError as e:
            raise HttpError(500, "无法读取词书", str(e))

        merged: Dict[UUID, Wordbook] = {}
        for row in [*own, *templates]:
            merged[row.id] = row
        return [map_wordbook(row) for row in merged.values()]

    def get_wordbook(self, db: Session, user_id: UUID, book_id: UUID) -> WordbookResponse:
        """Read one wordbook; allowed for its owner or when it is a template."""
        book = self._fetch(db, book_id)
        if not book.is_template and book.owner_id != user_id:
            raise HttpError(403, "无权查看此词书")
        return map_wordbook(book)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_wordbook(
        self,
        db: Session,
        user_id: UUID,
        payload: WordbookCreateRequest
    ) -> WordbookResponse:
        """
        Create a wordbook owned by the caller.

        A client-chosen ``id`` is honoured so a book created offline keeps its
        identity once pushed.

        Raises:
            HttpError: 409 if the id is taken, 400 on entry id conflicts, 500 on storage errors
        """
        if payload.id is not None and db.get(Wordbook, payload.id) is not None:
            raise HttpError(409, "词书 ID 已存在")

        dedup = deduplicate_words(payload.words or [])
        self._check_entry_ids(db, dedup.accepted, book_id=payload.id)

        book = Wordbook(
            owner_id=user_id,
            title=payload.title,
            subtitle=payload.subtitle,
            target_passes=payload.targetPasses or 1,
            is_template=False
        )
        if payload.id is not None:
            book.id = payload.id

        try:
            db.add(book)
            db.flush()
            for entry in dedup.accepted:
                db.add(self._new_entry(book.id, entry))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "创建词书失败", str(e))

        db.refresh(book)
        logger.info(f"📚 Created wordbook {book.id} with {len(dedup.accepted)} words for user {user_id}")
        return map_wordbook(book)

    def update_wordbook(
        self,
        db: Session,
        user_id: UUID,
        book_id: UUID,
        payload: WordbookUpdateRequest
    ) -> WordbookResponse:
        """
        Partially update a wordbook, optionally replacing its word list.

        Word-list replacement runs three phases in order: update entries that
        carry an id, insert entries without one, delete previously existing
        entries missing from the payload. The phases share one transaction.

        Raises:
            HttpError: 404 missing, 403 not owner, 400 entry id conflict, 500 storage
        """
        book = self._fetch(db, book_id)
        self._assert_owner(book, user_id, "无权操作此词书")

        fields_set = payload.model_fields_set
        try:
            if payload.title is not None:
                book.title = payload.title
            if "subtitle" in fields_set:
                book.subtitle = payload.subtitle
            if payload.targetPasses is not None:
                book.target_passes = payload.targetPasses

            if payload.words is not None:
                self._replace_entries(db, book, payload.words)
                book.updated_at = func.now()

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "更新词书失败", str(e))

        db.refresh(book)
        return map_wordbook(self._fetch(db, book_id))

    def delete_wordbook(self, db: Session, user_id: UUID, book_id: UUID) -> None:
        """Hard-delete a wordbook; entries, progress and visibility rows cascade."""
        book = self._fetch(db, book_id)
        self._assert_owner(book, user_id, "无权操作此词书")
        try:
            db.delete(book)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "删除词书失败", str(e))
        logger.info(f"🗑️ Deleted wordbook {book_id}")

    def import_entries(
        self,
        db: Session,
        user_id: UUID,
        book_id: UUID,
        entries: List[WordEntryPayload]
    ) -> Tuple[int, List[str]]:
        """
        Append entries to an owned wordbook, skipping words it already has.

        Returns:
            (added count, rejected duplicate words in submission order)
        """
        book = self._fetch(db, book_id)
        self._assert_owner(book, user_id, "无权导入到此词书")

        existing_lemmas = [entry.lemma for entry in book.entries]
        # Import always mints new entries; client ids are ignored here
        dedup = deduplicate_words(
            [entry.model_copy(update={"id": None}) for entry in entries],
            existing_lemmas=existing_lemmas,
            base_ordinal=len(existing_lemmas)
        )

        if dedup.accepted:
            try:
                for entry in dedup.accepted:
                    db.add(self._new_entry(book.id, entry))
                book.updated_at = func.now()
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise HttpError(500, "导入新单词失败", str(e))

        logger.info(
            f"📥 Imported {len(dedup.accepted)} words into {book_id}, "
            f"{len(dedup.duplicates)} duplicates rejected"
        )
        return len(dedup.accepted), dedup.duplicates

    def upsert_template(
        self,
        db: Session,
        book_id: UUID,
        title: str,
        entries: List[WordEntryPayload],
        subtitle: Optional[str] = None,
        template_version: int = 1
    ) -> WordbookResponse:
        """
        Create or refresh a shared template wordbook with a fixed id.

        An existing template is only rewritten when ``template_version`` is
        newer than the stored one.
        """
        book = db.get(Wordbook, book_id)
        if book is not None and book.template_version >= template_version:
            logger.info(f"✅ Template {book_id} already at version {book.template_version} - skipping")
            return map_wordbook(self._fetch(db, book_id))

        dedup = deduplicate_words(entries)
        try:
            if book is None:
                book = Wordbook(id=book_id, owner_id=None, is_template=True)
                db.add(book)
            else:
                db.query(WordEntry).filter(WordEntry.wordbook_id == book_id).delete(synchronize_session=False)
                db.expire(book, ["entries"])
            book.title = title
            book.subtitle = subtitle
            book.target_passes = 1
            book.template_version = template_version
            db.flush()
            for entry in dedup.accepted:
                db.add(self._new_entry(book_id, entry))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise HttpError(500, "保存模板词书失败", str(e))

        logger.info(f"📚 Template {title} v{template_version}: {len(dedup.accepted)} words")
        return map_wordbook(self._fetch(db, book_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch(self, db: Session, book_id: UUID) -> Wordbook:
        try:
            book = (
                db.query(Wordbook)
                .options(selectinload(Wordbook.entries))
                .filter(Wordbook.id == book_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise HttpError(500, "读取词书失败", str(e))
        if book is None:
            raise HttpError(404, "词书不存在")
        return book

    @staticmethod
    def _assert_owner(book: Wordbook, user_id: UUID, message: str) -> None:
        if book.owner_id != user_id:
            raise HttpError(403, message)

    @staticmethod
    def _new_entry(book_id: UUID, entry: CleanEntry) -> WordEntry:
        row = WordEntry(
            wordbook_id=book_id,
            lemma=entry.word,
            definition=entry.meaning,
            ordinal=entry.ordinal
        )
        if entry.id is not None:
            row.id = entry.id
        return row

    @staticmethod
    def _check_entry_ids(db: Session, entries: List[CleanEntry], book_id: Optional[UUID]) -> None:
        """Reject entry ids that already belong to a different wordbook."""
        ids = [entry.id for entry in entries if entry.id is not None]
        if not ids:
            return
        clashes = (
            db.query(WordEntry.id)
            .filter(WordEntry.id.in_(ids), WordEntry.wordbook_id != book_id)
            .all()
            if book_id is not None
            else db.query(WordEntry.id).filter(WordEntry.id.in_(ids)).all()
        )
        if clashes:
            raise HttpError(400, "单词 ID 已被其他词书使用", [str(row.id) for row in clashes])

    def _replace_entries(self, db: Session, book: Wordbook, words: List[WordEntryPayload]) -> None:
        dedup = deduplicate_words(words)
        self._check_entry_ids(db, dedup.accepted, book_id=book.id)

        existing: Dict[UUID, WordEntry] = {entry.id: entry for entry in book.entries}
        updates = [entry for entry in dedup.accepted if entry.id is not None]
        inserts = [entry for entry in dedup.accepted if entry.id is None]
        keep_ids = {entry.id for entry in updates}

        # Phase 1: update entries carrying an id (unknown ids are upserted)
        for entry in updates:
            row = existing.get(entry.id)
            if row is None:
                db.add(self._new_entry(book.id, entry))
                continue
            row.lemma = entry.word
            row.definition = entry.meaning
            row.ordinal = entry.ordinal
        db.flush()

        # Phase 2: insert new entries
        for entry in inserts:
            db.add(self._new_entry(book.id, entry))
        db.flush()

        # Phase 3: delete entries missing from the payload
        to_delete = [entry_id for entry_id in existing if entry_id not in keep_ids]
        if to_delete:
            db.query(WordEntry).filter(WordEntry.id.in_(to_delete)).delete(synchronize_session=False)
            db.flush()
        db.expire(book, ["entries"])

        logger.info(
            f"✏️ Replaced words of {book.id}: {len(updates)} updated, "
            f"{len(inserts)} inserted, {len(to_delete)} deleted"
        )
