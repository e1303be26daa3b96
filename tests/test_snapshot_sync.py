"""
Snapshot sync over the in-memory blob store
"""
import asyncio
import json
import uuid
from dataclasses import replace

import pytest

from vocab_client.models import ProgressState, Wordbook, WordEntry
from vocab_client.session import UserSession
from vocab_client.snapshot_sync import SNAPSHOT_KEY, InMemoryBlobStore, SnapshotError, SnapshotSync
from vocab_client.storage import MemoryStorage


def make_book(title="Unit 1", count=12):
    return Wordbook(title=title, words=[WordEntry(word=f"{title}-{i}", meaning="m") for i in range(count)])


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def source(user_id):
    session = UserSession(MemoryStorage(), user_id)
    book = make_book()
    session.add_wordbook(book)
    session.mark_page_completed(book.id, 0)
    session.visibility.toggle_word(book.words[0].id)
    session.visibility.toggle_meaning(book.words[1].id)
    session.profile.update(display_name="小明", avatar_emoji="🦊")
    return session


class TestSnapshotSync:

    def test_build_snapshot_shape(self, source):
        snapshot = SnapshotSync(source, InMemoryBlobStore()).build_snapshot()

        book = source.wordbooks.wordbooks[0]
        assert snapshot["schemaVersion"] == 1
        assert [b["id"] for b in snapshot["wordbooks"]] == [str(book.id)]
        assert snapshot["progress"] == {str(book.id): {"completedPages": 1, "completedPasses": 0}}
        assert snapshot["visibility"][str(book.id)] == {
            "hiddenWords": [str(book.words[0].id)],
            "hiddenMeanings": [str(book.words[1].id)],
        }
        assert snapshot["profile"]["displayName"] == "小明"
        assert sum(snapshot["daily"].values()) == 10

    @pytest.mark.asyncio
    async def test_upload_then_pull_on_another_device(self, source, blob_store, user_id):
        await SnapshotSync(source, blob_store).upload()

        device = UserSession(MemoryStorage(), user_id)
        local_only = make_book("local only")
        device.add_wordbook(local_only)

        applied = await SnapshotSync(device, blob_store).initial_pull()

        book = source.wordbooks.wordbooks[0]
        assert applied
        assert device.wordbooks.get(book.id) == book
        assert local_only.id in device.wordbooks
        assert device.progress.progress(book.id) == ProgressState(1, 0)
        assert not device.visibility.is_word_visible(book.words[0].id)
        assert not device.visibility.is_meaning_visible(book.words[1].id)
        assert device.profile.profile.avatar_emoji == "🦊"
        assert device.daily.records() == source.daily.records()

    @pytest.mark.asyncio
    async def test_existing_book_is_updated_from_snapshot(self, source, blob_store, user_id):
        book = source.wordbooks.wordbooks[0]
        await SnapshotSync(source, blob_store).upload()

        device = UserSession(MemoryStorage(), user_id)
        device.add_wordbook(replace(book, title="old title"))

        await SnapshotSync(device, blob_store).initial_pull()

        assert device.wordbooks.get(book.id).title == book.title
        assert len(device.wordbooks) == 1

    @pytest.mark.asyncio
    async def test_missing_blob_is_a_no_op(self, blob_store, user_id):
        device = UserSession(MemoryStorage(), user_id)
        assert await SnapshotSync(device, blob_store).initial_pull() is False
        assert len(device.wordbooks) == 0

    @pytest.mark.asyncio
    async def test_unsupported_schema_is_rejected(self, blob_store, user_id):
        blob_store.blobs[SNAPSHOT_KEY] = json.dumps({"schemaVersion": 99}).encode("utf-8")
        device = UserSession(MemoryStorage(), user_id)
        with pytest.raises(SnapshotError):
            await SnapshotSync(device, blob_store).initial_pull()

    @pytest.mark.asyncio
    async def test_garbage_blob_is_rejected(self, blob_store, user_id):
        blob_store.blobs[SNAPSHOT_KEY] = b"\xff\xfe not json"
        device = UserSession(MemoryStorage(), user_id)
        with pytest.raises(SnapshotError):
            await SnapshotSync(device, blob_store).initial_pull()

    @pytest.mark.asyncio
    async def test_scheduled_uploads_are_debounced(self, source, blob_store):
        uploads = []

        class RecordingStore(InMemoryBlobStore):
            async def put(self, key, data):
                uploads.append(key)
                await super().put(key, data)

        sync = SnapshotSync(source, RecordingStore(), debounce=0.01)
        sync.schedule_upload()
        task = sync.schedule_upload()
        await task
        await asyncio.sleep(0.02)

        assert uploads == [SNAPSHOT_KEY]

    @pytest.mark.asyncio
    async def test_snapshot_progress_is_clamped_and_unknown_books_skipped(self, blob_store, user_id):
        book = make_book(count=25)
        blob_store.blobs[SNAPSHOT_KEY] = json.dumps({
            "schemaVersion": 1,
            "wordbooks": [book.to_dict()],
            "progress": {
                str(book.id): {"completedPages": 99, "completedPasses": 0},
                str(uuid.uuid4()): {"completedPages": 1, "completedPasses": 0},
            },
        }).encode("utf-8")
        device = UserSession(MemoryStorage(), user_id)

        await SnapshotSync(device, blob_store).initial_pull()

        assert device.progress.progress(book.id) == ProgressState(3, 0)
        assert len(device.progress) == 1

    @pytest.mark.asyncio
    async def test_trashed_book_is_not_brought_back(self, source, blob_store, user_id):
        book = source.wordbooks.wordbooks[0]
        await SnapshotSync(source, blob_store).upload()
        device = UserSession(MemoryStorage(), user_id)
        device.add_wordbook(book)
        device.delete_wordbook(book.id)

        await SnapshotSync(device, blob_store).initial_pull()

        assert book.id not in device.wordbooks
        assert device.wordbooks.is_trashed(book.id)
