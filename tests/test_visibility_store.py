"""
VisibilityStore tests
"""
import uuid

import pytest

from vocab_client.models import VisibilityEntry, Wordbook, WordEntry
from vocab_client.storage import MemoryStorage
from vocab_client.visibility_store import VisibilityStore


class CountingStorage(MemoryStorage):
    """MemoryStorage that counts writes."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        super().set(key, value)


@pytest.fixture
def storage():
    return CountingStorage()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def store(storage, user_id):
    return VisibilityStore(storage, user_id)


@pytest.fixture
def words():
    return [WordEntry(word=f"w{i}", meaning=f"m{i}") for i in range(3)]


class TestVisibilityStore:

    def test_everything_visible_by_default(self, store, words):
        assert store.is_word_visible(words[0].id)
        assert store.is_meaning_visible(words[0].id)
        assert store.are_all_meanings_visible(words)
        assert len(store) == 0

    def test_toggle_back_to_default_prunes_record(self, storage, user_id, store, words):
        entry_id = words[0].id
        assert store.toggle_word(entry_id) is False
        assert len(store) == 1

        assert store.toggle_word(entry_id) is True
        assert len(store) == 0
        assert VisibilityStore(storage, user_id).records() == {}

    def test_toggles_persist(self, storage, user_id, store, words):
        store.toggle_meaning(words[1].id)

        reloaded = VisibilityStore(storage, user_id)
        assert not reloaded.is_meaning_visible(words[1].id)
        assert reloaded.is_word_visible(words[1].id)

    def test_bulk_set_writes_once(self, storage, store, words):
        changed = store.set_meaning_visibility(False, words)

        assert changed == 3
        assert storage.writes == 1
        assert not store.are_all_meanings_visible(words)

    def test_bulk_set_without_changes_does_not_write(self, storage, store, words):
        assert store.set_meaning_visibility(True, words) == 0
        assert storage.writes == 0

    def test_bulk_show_restores_default(self, store, words):
        store.set_meaning_visibility(False, words)
        store.set_meaning_visibility(True, words)
        assert len(store) == 0

    def test_reconcile_drops_removed_entries(self, storage, store, words):
        store.set_meaning_visibility(False, words)
        storage.writes = 0

        store.reconcile(previous=words, updated=words[:1])

        assert set(store.records()) == {words[0].id}
        assert storage.writes == 1

    def test_remove(self, store, words):
        store.toggle_word(words[0].id)
        store.toggle_word(words[1].id)
        store.remove(words[:1])
        assert set(store.records()) == {words[1].id}

    def test_hidden_id_snapshot_and_replace_all(self, store, words):
        book = Wordbook(title="Unit 1", words=words)
        store.toggle_word(words[0].id)
        store.toggle_meaning(words[2].id)

        snapshot = store.hidden_id_snapshot([book, Wordbook(title="empty")])
        assert snapshot == {
            str(book.id): {"hiddenWords": [str(words[0].id)], "hiddenMeanings": [str(words[2].id)]}
        }

        store.replace_all(hidden_words={words[1].id}, hidden_meanings={words[1].id})
        assert store.is_word_visible(words[0].id)
        assert store.is_meaning_visible(words[2].id)
        assert not store.is_word_visible(words[1].id)
        assert not store.is_meaning_visible(words[1].id)

    def test_default_records_in_storage_are_ignored(self, user_id):
        entry_id = uuid.uuid4()
        storage = MemoryStorage({
            f"WordVisibilityStore.v1.{user_id}": {str(entry_id): {"showWord": True, "showMeaning": True}}
        })
        assert VisibilityStore(storage, user_id).records() == {}

    def test_reset_to_default_is_pending_until_synced(self, storage, user_id, store, words):
        entry_id = words[0].id
        store.toggle_word(entry_id)
        assert store.pending_resets() == set()

        store.toggle_word(entry_id)
        assert store.pending_resets() == {entry_id}
        assert VisibilityStore(storage, user_id).pending_resets() == {entry_id}

        store.mark_resets_synced([entry_id])
        assert VisibilityStore(storage, user_id).pending_resets() == set()

    def test_apply_remote_keeps_pending_reset(self, store, words):
        entry_id = words[0].id
        store.toggle_meaning(entry_id)
        store.toggle_meaning(entry_id)

        applied = store.apply_remote(entry_id, VisibilityEntry(show_word=True, show_meaning=False))

        assert applied is False
        assert store.is_meaning_visible(entry_id)

    def test_apply_remote_does_not_create_pending_reset(self, store, words):
        entry_id = words[0].id
        store.apply_remote(entry_id, VisibilityEntry(show_word=False, show_meaning=True))
        store.apply_remote(entry_id, VisibilityEntry())

        assert store.is_word_visible(entry_id)
        assert store.pending_resets() == set()
