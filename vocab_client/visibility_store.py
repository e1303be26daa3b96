"""
Per-user word/meaning masking state.

Only entries that differ from the default (both visible) are stored, so the
persisted map stays small and "no record" always means fully visible.

Entries that return to the default locally are remembered as pending resets
until a push confirms them, since the server keeps a row per hidden entry.
"""
import logging
from typing import Any, Dict, Iterable, List, Set
from uuid import UUID

from vocab_client.models import VisibilityEntry, Wordbook, WordEntry
from vocab_client.storage import NamespacedStore, namespaced_key

logger = logging.getLogger(__name__)

VisibilityMap = Dict[UUID, VisibilityEntry]


class VisibilityStore(NamespacedStore[VisibilityMap]):
    """Visibility toggles keyed by word-entry id."""

    base_key = "WordVisibilityStore.v1"
    resets_key = "WordVisibilityStore.resets.v1"

    def _empty(self) -> VisibilityMap:
        return {}

    def _decode(self, raw: Any) -> VisibilityMap:
        state: VisibilityMap = {}
        for key, value in dict(raw).items():
            entry = VisibilityEntry.from_dict(value)
            if not entry.is_default:
                state[UUID(key)] = entry
        return state

    def _encode(self, state: VisibilityMap) -> Dict[str, Any]:
        return {str(entry_id): entry.to_dict() for entry_id, entry in state.items()}

    def _after_load(self) -> None:
        raw = self.storage.get(namespaced_key(self.resets_key, self.user_id)) or []
        self._resets: Set[UUID] = {UUID(value) for value in raw}
        self._saved_resets: Set[UUID] = set(self._resets)

    def _persist(self) -> None:
        super()._persist()
        self._persist_resets()

    def _persist_resets(self) -> None:
        if self._resets == self._saved_resets:
            return
        key = namespaced_key(self.resets_key, self.user_id)
        if self._resets:
            self.storage.set(key, sorted(str(entry_id) for entry_id in self._resets))
        else:
            self.storage.delete(key)
        self._saved_resets = set(self._resets)

    def entry(self, entry_id: UUID) -> VisibilityEntry:
        return self._state.get(entry_id, VisibilityEntry())

    def is_word_visible(self, entry_id: UUID) -> bool:
        return self.entry(entry_id).show_word

    def is_meaning_visible(self, entry_id: UUID) -> bool:
        return self.entry(entry_id).show_meaning

    def are_all_meanings_visible(self, entries: Iterable[WordEntry]) -> bool:
        return all(self.is_meaning_visible(entry.id) for entry in entries)

    def records(self) -> VisibilityMap:
        """Stored (non-default) entries; used by sync push."""
        return dict(self._state)

    def pending_resets(self) -> Set[UUID]:
        """Entries made fully visible again since the last confirmed push."""
        return set(self._resets)

    def __len__(self) -> int:
        return len(self._state)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _put(self, state: VisibilityMap, entry_id: UUID, entry: VisibilityEntry, track: bool = True) -> None:
        if entry.is_default:
            if state.pop(entry_id, None) is not None and track:
                self._resets.add(entry_id)
        else:
            state[entry_id] = entry
            self._resets.discard(entry_id)

    def set_entry(self, entry_id: UUID, show_word: bool, show_meaning: bool) -> None:
        entry = VisibilityEntry(show_word=show_word, show_meaning=show_meaning)
        if self.entry(entry_id) == entry:
            return
        self.mutate(lambda state: self._put(state, entry_id, entry))

    def apply_remote(self, entry_id: UUID, entry: VisibilityEntry) -> bool:
        """
        Overwrite an entry with the server's value.

        Returns:
            False if the entry has a pending local reset and was left alone
        """
        if entry_id in self._resets:
            return False
        if self.entry(entry_id) != entry:
            self.mutate(lambda state: self._put(state, entry_id, entry, track=False))
        return True

    def mark_resets_synced(self, entry_ids: Iterable[UUID]) -> None:
        """Forget pending resets the server has accepted."""
        self._resets.difference_update(entry_ids)
        self._persist_resets()

    def toggle_word(self, entry_id: UUID) -> bool:
        """Flip word visibility; returns the new value."""
        current = self.entry(entry_id)
        self.set_entry(entry_id, not current.show_word, current.show_meaning)
        return not current.show_word

    def toggle_meaning(self, entry_id: UUID) -> bool:
        """Flip meaning visibility; returns the new value."""
        current = self.entry(entry_id)
        self.set_entry(entry_id, current.show_word, not current.show_meaning)
        return not current.show_meaning

    def set_meaning_visibility(self, visible: bool, entries: Iterable[WordEntry]) -> int:
        """
        Show or hide the meaning of every given entry.

        Persists once for the whole batch, and not at all when nothing changed.

        Returns:
            Number of entries whose state changed
        """
        changes: List[tuple] = []
        for item in entries:
            current = self.entry(item.id)
            if current.show_meaning != visible:
                changes.append((item.id, VisibilityEntry(current.show_word, visible)))
        if not changes:
            return 0

        def _apply(state: VisibilityMap) -> None:
            for entry_id, entry in changes:
                self._put(state, entry_id, entry)

        self.mutate(_apply)
        return len(changes)

    def remove(self, entries: Iterable[WordEntry]) -> None:
        """Forget the state of the given entries."""
        self.remove_ids(entry.id for entry in entries)

    def remove_ids(self, entry_ids: Iterable[UUID]) -> None:
        doomed = [
            entry_id for entry_id in entry_ids
            if entry_id in self._state or entry_id in self._resets
        ]
        if not doomed:
            return

        def _drop(state: VisibilityMap) -> None:
            for entry_id in doomed:
                state.pop(entry_id, None)
                self._resets.discard(entry_id)

        self.mutate(_drop)

    def reconcile(self, previous: Iterable[WordEntry], updated: Iterable[WordEntry]) -> None:
        """Drop state for entries that disappeared between two word lists."""
        kept = {entry.id for entry in updated}
        gone = [entry.id for entry in previous if entry.id not in kept]
        if gone:
            logger.debug(f"Reconciling visibility: dropping {len(gone)} entries")
        self.remove_ids(gone)

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def hidden_id_snapshot(self, wordbooks: Iterable[Wordbook]) -> Dict[str, Dict[str, List[str]]]:
        """
        Hidden entry ids grouped by wordbook.

        Returns:
            ``{book_id: {"hiddenWords": [...], "hiddenMeanings": [...]}}`` for
            books that have at least one hidden entry
        """
        snapshot: Dict[str, Dict[str, List[str]]] = {}
        for book in wordbooks:
            hidden_words = [str(e.id) for e in book.words if not self.is_word_visible(e.id)]
            hidden_meanings = [str(e.id) for e in book.words if not self.is_meaning_visible(e.id)]
            if hidden_words or hidden_meanings:
                snapshot[str(book.id)] = {"hiddenWords": hidden_words, "hiddenMeanings": hidden_meanings}
        return snapshot

    def replace_all(self, hidden_words: Set[UUID], hidden_meanings: Set[UUID]) -> None:
        """Replace the whole map from hidden-id sets in one write."""
        records: VisibilityMap = {}
        for entry_id in set(hidden_words) | set(hidden_meanings):
            records[entry_id] = VisibilityEntry(
                show_word=entry_id not in hidden_words,
                show_meaning=entry_id not in hidden_meanings
            )

        def _replace(state: VisibilityMap) -> None:
            state.clear()
            state.update(records)
            self._resets.difference_update(records)

        self.mutate(_replace)
