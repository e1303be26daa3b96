"""
SyncCoordinator tests against an in-memory fake of the API client
"""
import asyncio
import uuid
from dataclasses import replace
from typing import Dict, List, Optional

import pytest

from vocab_client.api_client import NotFoundError, ServerError
from vocab_client.models import ProgressState, UserProfile, VisibilityEntry, Wordbook, WordEntry, utc_now
from vocab_client.session import UserSession
from vocab_client.storage import MemoryStorage
from vocab_client.sync_coordinator import SyncCoordinator, chunked


def make_book(title="Unit 1", count=25, **kwargs):
    return Wordbook(
        title=title,
        words=[WordEntry(word=f"{title}-{i}", meaning="-", ordinal=i) for i in range(count)],
        **kwargs
    )


class FakeApiClient:
    """Remote state kept in dicts; failures injected per method name."""

    def __init__(self):
        self.books: Dict[uuid.UUID, Wordbook] = {}
        self.progress: Dict[uuid.UUID, ProgressState] = {}
        self.visibility: Dict[uuid.UUID, VisibilityEntry] = {}
        self.daily: Dict[str, int] = {}
        self.profile = UserProfile()
        self.fail: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    def _check(self, name):
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    async def get_wordbooks(self, include_templates=True, limit=None):
        if self.gate is not None:
            await self.gate.wait()
        self._check("get_wordbooks")
        return [b for b in self.books.values() if include_templates or not b.is_template]

    async def get_section_progress(self, book_id=None):
        self._check("get_section_progress")
        return dict(self.progress)

    async def get_visibility(self, book_id=None):
        self._check("get_visibility")
        return dict(self.visibility)

    async def get_daily_progress(self, start_date=None, end_date=None):
        self._check("get_daily_progress")
        return dict(self.daily)

    async def get_profile(self):
        self._check("get_profile")
        return self.profile

    async def update_wordbook(self, book):
        self._check("update_wordbook")
        if book.id not in self.books:
            raise NotFoundError(status_code=404)
        self.books[book.id] = book
        return book

    async def create_wordbook(self, book):
        self._check("create_wordbook")
        self.books[book.id] = book
        return book

    async def upsert_section_progress(self, records):
        self._check("upsert_section_progress")
        self.progress.update(records)

    async def upsert_visibility(self, records):
        self._check("upsert_visibility")
        self.visibility.update(records)

    async def upsert_daily_progress(self, records):
        self._check("upsert_daily_progress")
        self.daily.update(records)

    async def update_profile(self, display_name=None, avatar_emoji=None):
        self._check("update_profile")
        self.profile = UserProfile(display_name, avatar_emoji, utc_now())
        return self.profile


@pytest.fixture
def session():
    return UserSession(MemoryStorage(), uuid.uuid4())


@pytest.fixture
def api():
    return FakeApiClient()


@pytest.fixture
def coordinator(session, api):
    return SyncCoordinator(session, api)


class TestPull:

    @pytest.mark.asyncio
    async def test_remote_wins_and_new_books_are_inserted(self, session, api, coordinator):
        local = make_book("Local title")
        session.add_wordbook(local)
        api.books[local.id] = replace(local, title="Remote title")
        remote_only = make_book("Remote only")
        api.books[remote_only.id] = remote_only

        report = await coordinator.pull()

        assert report.ok
        assert session.wordbooks.get(local.id).title == "Remote title"
        assert session.wordbooks.get(remote_only.id) == remote_only

    @pytest.mark.asyncio
    async def test_templates_are_not_pulled(self, session, api, coordinator):
        template = make_book("Template", is_template=True)
        api.books[template.id] = template

        await coordinator.pull()

        assert template.id not in session.wordbooks

    @pytest.mark.asyncio
    async def test_progress_overwrites_known_books_and_skips_unknown(self, session, api, coordinator):
        book = make_book(count=25)
        session.add_wordbook(book)
        session.progress.set_progress(book.id, 1, 0)
        api.books[book.id] = book
        api.progress = {book.id: ProgressState(2, 0), uuid.uuid4(): ProgressState(1, 0)}

        report = await coordinator.pull()

        assert session.progress.progress(book.id) == ProgressState(2, 0)
        assert len(session.progress) == 1
        assert report.progress_records == 1

    @pytest.mark.asyncio
    async def test_progress_is_clamped_to_the_pulled_shape(self, session, api, coordinator):
        book = make_book(count=25)
        session.add_wordbook(book)
        session.progress.set_progress(book.id, 3, 0)
        api.books[book.id] = replace(book, words=book.words[:5])

        await coordinator.pull()

        assert session.progress.progress(book.id) == ProgressState(1, 0)

    @pytest.mark.asyncio
    async def test_wordbook_failure_raises(self, api, coordinator):
        api.fail["get_wordbooks"] = ServerError(status_code=500)
        with pytest.raises(ServerError):
            await coordinator.pull()
        assert not coordinator.is_syncing

    @pytest.mark.asyncio
    async def test_progress_failure_is_reported_not_raised(self, api, coordinator):
        api.fail["get_section_progress"] = ServerError(status_code=500)

        report = await coordinator.pull()

        assert not report.ok
        assert [f.stage for f in report.failures] == ["progress"]

    @pytest.mark.asyncio
    async def test_visibility_is_applied(self, session, api, coordinator):
        entry_id = uuid.uuid4()
        api.visibility = {entry_id: VisibilityEntry(show_word=False, show_meaning=True)}

        await coordinator.pull()

        assert not session.visibility.is_word_visible(entry_id)

    @pytest.mark.asyncio
    async def test_second_pull_while_running_is_skipped(self, api, coordinator):
        api.gate = asyncio.Event()
        first = asyncio.ensure_future(coordinator.pull())
        await asyncio.sleep(0)

        second = await coordinator.pull()
        api.gate.set()
        first_report = await first

        assert second.skipped
        assert not first_report.skipped
        assert api.calls.count("get_wordbooks") == 1

    @pytest.mark.asyncio
    async def test_trashed_book_stays_in_trash(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        api.books[book.id] = book
        session.delete_wordbook(book.id)

        report = await coordinator.pull()

        assert book.id not in session.wordbooks
        assert book.id not in report.pulled
        assert session.restore_wordbook(book.id) == book
        assert [b.id for b in session.wordbooks.wordbooks] == [book.id]

    @pytest.mark.asyncio
    async def test_local_reset_survives_pull(self, session, api, coordinator):
        entry_id = uuid.uuid4()
        session.visibility.toggle_word(entry_id)
        session.visibility.toggle_word(entry_id)
        api.visibility = {entry_id: VisibilityEntry(show_word=False, show_meaning=True)}

        await coordinator.pull()

        assert session.visibility.is_word_visible(entry_id)


class TestPush:

    @pytest.mark.asyncio
    async def test_patch_then_create_on_404(self, session, api, coordinator):
        known, fresh = make_book("known"), make_book("fresh")
        session.add_wordbook(known)
        session.add_wordbook(fresh)
        api.books[known.id] = replace(known, title="stale")

        report = await coordinator.push()

        assert report.ok
        assert report.updated == [known.id]
        assert report.created == [fresh.id]
        assert api.books[known.id].title == "known"
        assert fresh.id in api.books

    @pytest.mark.asyncio
    async def test_failed_book_is_reported_and_its_progress_not_pushed(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        session.progress.set_progress(book.id, 1, 0)
        api.fail["update_wordbook"] = ServerError(status_code=500)

        report = await coordinator.push()

        assert [(f.stage, f.target) for f in report.failures] == [("wordbook", str(book.id))]
        assert api.progress == {}

    @pytest.mark.asyncio
    async def test_progress_visibility_and_daily_are_pushed(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        session.mark_page_completed(book.id, 0)
        session.visibility.toggle_meaning(book.words[0].id)

        report = await coordinator.push()

        assert report.ok
        assert api.progress == {book.id: ProgressState(1, 0)}
        assert api.visibility == {book.words[0].id: VisibilityEntry(True, False)}
        assert sum(api.daily.values()) == 10

    @pytest.mark.asyncio
    async def test_templates_are_not_pushed(self, session, api, coordinator):
        session.add_wordbook(make_book("Template", is_template=True))

        await coordinator.push()

        assert "update_wordbook" not in api.calls
        assert "create_wordbook" not in api.calls

    @pytest.mark.asyncio
    async def test_untouched_profile_is_not_pushed(self, api, coordinator):
        await coordinator.push()
        assert "update_profile" not in api.calls

    @pytest.mark.asyncio
    async def test_stage_failure_does_not_stop_later_stages(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        session.mark_page_completed(book.id, 0)
        api.fail["upsert_section_progress"] = ServerError(status_code=500)

        report = await coordinator.push()

        assert [f.stage for f in report.failures] == ["progress"]
        assert "upsert_daily_progress" in api.calls

    @pytest.mark.asyncio
    async def test_unhiding_a_word_reaches_the_server(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        entry_id = book.words[0].id

        session.visibility.toggle_word(entry_id)
        await coordinator.sync()
        assert api.visibility[entry_id] == VisibilityEntry(show_word=False, show_meaning=True)

        session.visibility.toggle_word(entry_id)
        await coordinator.sync()

        assert api.visibility[entry_id] == VisibilityEntry()
        assert session.visibility.is_word_visible(entry_id)
        assert session.visibility.pending_resets() == set()

        await coordinator.sync()
        assert session.visibility.is_word_visible(entry_id)

    @pytest.mark.asyncio
    async def test_failed_visibility_push_keeps_pending_reset(self, session, api, coordinator):
        book = make_book()
        session.add_wordbook(book)
        entry_id = book.words[0].id
        session.visibility.toggle_meaning(entry_id)
        session.visibility.toggle_meaning(entry_id)
        api.fail["upsert_visibility"] = ServerError(status_code=500)

        report = await coordinator.push()

        assert [f.stage for f in report.failures] == ["visibility"]
        assert session.visibility.pending_resets() == {entry_id}


class TestChunking:

    def test_chunked_respects_batch_size(self):
        records = {i: i for i in range(450)}
        batches = chunked(records, 200)
        assert [len(b) for b in batches] == [200, 200, 50]
        assert list(batches[2]) == list(range(400, 450))
