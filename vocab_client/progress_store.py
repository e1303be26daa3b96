"""
Per-user page/pass progress store.

Maps wordbook id → ProgressState. All transitions go through the pure
methods on ProgressState; this store owns lookup, lazy defaults and
persistence.
"""
import logging
from typing import Any, Dict
from uuid import UUID

from vocab_client.models import ProgressState
from vocab_client.storage import NamespacedStore

logger = logging.getLogger(__name__)

ProgressMap = Dict[UUID, ProgressState]


class ProgressStore(NamespacedStore[ProgressMap]):
    """
    Section progress for one user.

    Single-writer: mutate only from the owning event loop / UI context.

    Usage:
        >>> store = ProgressStore(MemoryStorage(), user_id)
        >>> store.mark_page_completed(book.id, total_pages=3, page_index=0, target_passes=1)
        ProgressState(completed_pages=1, completed_passes=0)
    """

    base_key = "SectionProgressStore.v2"
    # v1 stored bare page counts under an un-namespaced key
    legacy_key = "SectionProgressStore.v1"

    def _empty(self) -> ProgressMap:
        return {}

    def _decode(self, raw: Any) -> ProgressMap:
        state: ProgressMap = {}
        for key, value in dict(raw).items():
            if isinstance(value, int):
                state[UUID(key)] = ProgressState(completed_pages=max(0, value))
            else:
                state[UUID(key)] = ProgressState.from_dict(value)
        return state

    def _encode(self, state: ProgressMap) -> Dict[str, Any]:
        return {str(book_id): progress.to_dict() for book_id, progress in state.items()}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def progress(self, book_id: UUID) -> ProgressState:
        """Stored progress, or zero progress if the book has none yet."""
        return self._state.get(book_id, ProgressState())

    def completed_pages(self, book_id: UUID) -> int:
        return self.progress(book_id).completed_pages

    def next_page_index(self, book_id: UUID, total_pages: int, target_passes: int) -> int:
        """Page to resume at: the last page once all passes are done."""
        return self.progress(book_id).next_page_index(total_pages, target_passes)

    def min_allowed_page_index(self, book_id: UUID, total_pages: int) -> int:
        """Lowest page the reader may navigate to (forward-only navigation)."""
        if total_pages <= 0:
            return 0
        return min(self.completed_pages(book_id), total_pages - 1)

    def records(self) -> ProgressMap:
        return dict(self._state)

    def __len__(self) -> int:
        return len(self._state)

    def __contains__(self, book_id: UUID) -> bool:
        return book_id in self._state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def clamp_progress(self, book_id: UUID, total_pages: int, target_passes: int) -> ProgressState:
        """Re-normalize after the book's size or target changed. Never raises."""
        current = self.progress(book_id)
        clamped = current.clamped(total_pages, target_passes)
        if book_id in self._state and clamped != current:
            self.mutate(lambda state: state.__setitem__(book_id, clamped))
        return clamped

    def mark_page_completed(
        self,
        book_id: UUID,
        total_pages: int,
        page_index: int,
        target_passes: int
    ) -> ProgressState:
        """
        Record that page ``page_index`` was finished.

        Finishing the last page ends the pass: either a new pass starts at
        page 0 or, when the target is reached, the book becomes terminal.
        Terminal books and empty books are left untouched.
        """
        current = self.progress(book_id)
        updated = current.after_page_completed(total_pages, page_index, target_passes)
        if updated != current:
            self.mutate(lambda state: state.__setitem__(book_id, updated))
            logger.debug(f"Progress {book_id}: {current} → {updated}")
        return updated

    def set_progress(self, book_id: UUID, completed_pages: int, completed_passes: int) -> ProgressState:
        """Overwrite wholesale (remote wins on pull)."""
        updated = ProgressState(max(0, completed_pages), max(0, completed_passes))
        self.mutate(lambda state: state.__setitem__(book_id, updated))
        return updated

    def reset_progress(self, book_id: UUID) -> None:
        if book_id in self._state:
            self.mutate(lambda state: state.pop(book_id, None))

    remove = reset_progress

    def remove_many(self, book_ids) -> None:
        doomed = [book_id for book_id in book_ids if book_id in self._state]
        if not doomed:
            return

        def _drop(state: ProgressMap) -> None:
            for book_id in doomed:
                state.pop(book_id, None)

        self.mutate(_drop)

    def replace_all(self, records: ProgressMap) -> None:
        def _replace(state: ProgressMap) -> None:
            state.clear()
            state.update(records)

        self.mutate(_replace)
