"""
Local wordbook list with a 30-day trash.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from vocab_client.models import (
    TRASH_RETENTION,
    TrashedWordbook,
    Wordbook,
    is_expired,
    utc_now,
)
from vocab_client.storage import KeyValueStorage, NamespacedStore

logger = logging.getLogger(__name__)


class WordbookState:
    """Active wordbooks in display order plus soft-deleted ones."""

    def __init__(self, books: Optional[List[Wordbook]] = None, trash: Optional[List[TrashedWordbook]] = None):
        self.books: List[Wordbook] = list(books or [])
        self.trash: List[TrashedWordbook] = list(trash or [])

    def index_of(self, book_id: UUID) -> Optional[int]:
        for i, book in enumerate(self.books):
            if book.id == book_id:
                return i
        return None


class WordbookStore(NamespacedStore[WordbookState]):
    """
    Wordbooks available on this device.

    ``delete`` moves a book to the trash; it can be restored until the
    retention window passes, after which ``purge_expired`` drops it for good.
    """

    base_key = "WordBookStore.v1"

    def __init__(
        self,
        storage: KeyValueStorage,
        user_id: UUID,
        retention: timedelta = TRASH_RETENTION
    ):
        self.retention = retention
        super().__init__(storage, user_id)

    def _empty(self) -> WordbookState:
        return WordbookState()

    def _decode(self, raw: Any) -> WordbookState:
        # v1 stored a bare list of books
        if isinstance(raw, list):
            return WordbookState([Wordbook.from_dict(item) for item in raw])
        return WordbookState(
            [Wordbook.from_dict(item) for item in raw.get("books", [])],
            [TrashedWordbook.from_dict(item) for item in raw.get("trash", [])]
        )

    def _encode(self, state: WordbookState) -> Dict[str, Any]:
        return {
            "books": [book.to_dict() for book in state.books],
            "trash": [item.to_dict() for item in state.trash],
        }

    def _after_load(self) -> None:
        # Books dropped while loading; UserSession clears their progress and visibility
        self.purged_on_load = self.purge_expired(utc_now())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def wordbooks(self) -> List[Wordbook]:
        return list(self._state.books)

    def get(self, book_id: UUID) -> Optional[Wordbook]:
        index = self._state.index_of(book_id)
        return self._state.books[index] if index is not None else None

    def __contains__(self, book_id: UUID) -> bool:
        return self._state.index_of(book_id) is not None

    def __len__(self) -> int:
        return len(self._state.books)

    def is_trashed(self, book_id: UUID) -> bool:
        return any(item.wordbook.id == book_id for item in self._state.trash)

    def trash_items(self) -> List[TrashedWordbook]:
        """Trash contents, newest deletion first."""
        return sorted(self._state.trash, key=lambda item: item.deleted_at, reverse=True)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, book: Wordbook) -> Wordbook:
        """Insert at the top of the list; an existing book with the same id is replaced."""
        def _add(state: WordbookState) -> None:
            index = state.index_of(book.id)
            if index is not None:
                state.books[index] = book
            else:
                state.books.insert(0, book)

        self.mutate(_add)
        return book

    def update(self, book: Wordbook) -> Optional[Wordbook]:
        """
        Replace a stored book in place.

        Returns:
            The previous version, or None if the book was not stored
        """
        index = self._state.index_of(book.id)
        if index is None:
            return None
        previous = self._state.books[index]
        self.mutate(lambda state: state.books.__setitem__(index, book))
        return previous

    def rename(self, book_id: UUID, title: str, subtitle: Optional[str] = None) -> Optional[Wordbook]:
        current = self.get(book_id)
        if current is None:
            return None
        updated = replace(current, title=title, subtitle=subtitle, updated_at=utc_now())
        self.update(updated)
        return updated

    def delete(self, book_id: UUID, now: Optional[datetime] = None) -> Optional[TrashedWordbook]:
        """Move a book to the trash."""
        index = self._state.index_of(book_id)
        if index is None:
            return None
        item = TrashedWordbook(self._state.books[index], now or utc_now())

        def _trash(state: WordbookState) -> None:
            del state.books[index]
            state.trash.append(item)

        self.mutate(_trash)
        logger.info(f"🗑️ Moved wordbook {book_id} to trash")
        return item

    def restore(self, book_id: UUID) -> Optional[Wordbook]:
        """Move a trashed book back to the top of the list, replacing any active copy."""
        item = next((t for t in self._state.trash if t.wordbook.id == book_id), None)
        if item is None:
            return None

        def _restore(state: WordbookState) -> None:
            state.trash = [t for t in state.trash if t.wordbook.id != book_id]
            state.books = [b for b in state.books if b.id != book_id]
            state.books.insert(0, item.wordbook)

        self.mutate(_restore)
        logger.info(f"♻️ Restored wordbook {book_id}")
        return item.wordbook

    def purge_expired(self, now: datetime) -> List[Wordbook]:
        """
        Drop trash items older than the retention window.

        Returns:
            The purged wordbooks, so callers can clean up related state
        """
        expired = [t for t in self._state.trash if is_expired(t, now, self.retention)]
        if not expired:
            return []

        def _purge(state: WordbookState) -> None:
            state.trash = [t for t in state.trash if not is_expired(t, now, self.retention)]

        self.mutate(_purge)
        logger.info(f"🧹 Purged {len(expired)} expired wordbooks from trash")
        return [t.wordbook for t in expired]

    def empty_trash(self) -> List[Wordbook]:
        purged = [t.wordbook for t in self._state.trash]
        if purged:
            self.mutate(lambda state: state.trash.clear())
        return purged
