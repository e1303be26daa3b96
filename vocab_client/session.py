"""
Per-login bundle of the local stores.

Structural wordbook changes touch several stores at once (the word list,
the progress clamp and the visibility reconcile); UserSession keeps them
consistent.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from vocab_client.config import ClientSettings, client_settings
from vocab_client.daily_progress_store import DailyProgressStore
from vocab_client.models import ProgressState, TrashedWordbook, Wordbook, WordEntry, utc_now
from vocab_client.profile_store import ProfileStore
from vocab_client.progress_store import ProgressStore
from vocab_client.storage import JsonFileStorage, KeyValueStorage
from vocab_client.visibility_store import VisibilityStore
from vocab_client.wordbook_store import WordbookStore

logger = logging.getLogger(__name__)


class UserSession:
    """
    All local state of one signed-in user.

    Usage:
        >>> session = UserSession(MemoryStorage(), user_id)
        >>> session.add_wordbook(Wordbook(title="Unit 1", words=[...]))
        >>> session.mark_page_completed(book_id, page_index=0)
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        user_id: UUID,
        settings: Optional[ClientSettings] = None
    ):
        self.settings = settings or client_settings
        self.storage = storage
        self.user_id = user_id

        self.progress = ProgressStore(storage, user_id)
        self.visibility = VisibilityStore(storage, user_id)
        self.daily = DailyProgressStore(storage, user_id)
        self.profile = ProfileStore(storage, user_id)
        self.wordbooks = WordbookStore(
            storage,
            user_id,
            retention=timedelta(days=self.settings.VOCAB_TRASH_RETENTION_DAYS)
        )
        self._forget(self.wordbooks.purged_on_load)

    @classmethod
    def open(cls, user_id: UUID, settings: Optional[ClientSettings] = None) -> "UserSession":
        """Session backed by the configured JSON storage file."""
        settings = settings or client_settings
        return cls(JsonFileStorage(settings.storage_path), user_id, settings)

    # ------------------------------------------------------------------
    # Wordbooks
    # ------------------------------------------------------------------

    def add_wordbook(self, book: Wordbook) -> Wordbook:
        previous = self.wordbooks.get(book.id)
        self.wordbooks.add(book)
        self._after_structural_change(previous, book)
        return book

    def update_wordbook(self, book: Wordbook) -> Optional[Wordbook]:
        """
        Replace a stored wordbook, then reconcile visibility and clamp progress.

        Returns:
            The previous version, or None if the book is not stored
        """
        previous = self.wordbooks.update(book)
        if previous is None:
            return None
        self._after_structural_change(previous, book)
        return previous

    def update_words(self, book_id: UUID, words: List[WordEntry]) -> Optional[Wordbook]:
        current = self.wordbooks.get(book_id)
        if current is None:
            return None
        updated = current.updating_words(words)
        self.update_wordbook(updated)
        return updated

    def delete_wordbook(self, book_id: UUID, now: Optional[datetime] = None) -> Optional[TrashedWordbook]:
        """Move to trash; progress and visibility stay until the book is purged."""
        return self.wordbooks.delete(book_id, now)

    def restore_wordbook(self, book_id: UUID) -> Optional[Wordbook]:
        book = self.wordbooks.restore(book_id)
        if book is not None:
            self.progress.clamp_progress(book.id, book.total_pages, book.target_passes)
        return book

    def trash_items(self, now: Optional[datetime] = None) -> List[TrashedWordbook]:
        """Trash contents, newest deletion first, after purging expired items."""
        self.purge_trash(now)
        return self.wordbooks.trash_items()

    def purge_trash(self, now: Optional[datetime] = None) -> List[Wordbook]:
        """Drop expired trash items together with their progress and visibility."""
        purged = self.wordbooks.purge_expired(now or utc_now())
        self._forget(purged)
        return purged

    def empty_trash(self) -> List[Wordbook]:
        purged = self.wordbooks.empty_trash()
        self._forget(purged)
        return purged

    # ------------------------------------------------------------------
    # Reading progress
    # ------------------------------------------------------------------

    def mark_page_completed(self, book_id: UUID, page_index: int) -> Optional[ProgressState]:
        """Record a finished page and count its words as learned today."""
        book = self.wordbooks.get(book_id)
        if book is None:
            logger.warning(f"⚠️ mark_page_completed on unknown wordbook {book_id}")
            return None
        before = self.progress.progress(book_id)
        after = self.progress.mark_page_completed(book_id, book.total_pages, page_index, book.target_passes)
        if after != before:
            pages = book.pages()
            if 0 <= page_index < len(pages):
                self.daily.record_learned(utc_now(), len(pages[page_index]))
        return after

    def next_page_index(self, book_id: UUID) -> int:
        book = self.wordbooks.get(book_id)
        if book is None:
            return 0
        return self.progress.next_page_index(book_id, book.total_pages, book.target_passes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _after_structural_change(self, previous: Optional[Wordbook], updated: Wordbook) -> None:
        if previous is not None:
            self.visibility.reconcile(previous.words, updated.words)
        self.progress.clamp_progress(updated.id, updated.total_pages, updated.target_passes)

    def _forget(self, books: Iterable[Wordbook]) -> None:
        books = list(books)
        if not books:
            return
        self.progress.remove_many(book.id for book in books)
        self.visibility.remove_ids(entry.id for book in books for entry in book.words)
