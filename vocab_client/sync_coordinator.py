"""
Pull/push synchronization between a UserSession and the backend.

Pull: remote wins. Wordbooks are fetched and written over local copies (or
inserted), progress is clamped to each book's new shape, then remote
progress, visibility, daily totals and profile are applied.

Push: each local wordbook is PATCHed (POSTed when the server does not know
it), then progress, visibility, daily totals and profile are upserted in
batches. Failures are collected into a SyncReport rather than raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set, TypeVar
from uuid import UUID

from vocab_client.api_client import ApiClient, ApiError, NotFoundError
from vocab_client.models import Wordbook
from vocab_client.session import UserSession

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

PROGRESS_BATCH_SIZE = 200
DAILY_BATCH_SIZE = 200
VISIBILITY_BATCH_SIZE = 500


def chunked(records: Dict[K, V], size: int) -> List[Dict[K, V]]:
    """Split a mapping into dicts of at most ``size`` items, preserving order."""
    items = list(records.items())
    return [dict(items[i:i + size]) for i in range(0, len(items), size)]


@dataclass
class SyncFailure:
    stage: str
    error: str
    target: Optional[str] = None


@dataclass
class SyncReport:
    """Outcome of one pull or push run."""
    direction: str
    skipped: bool = False
    pulled: List[UUID] = field(default_factory=list)
    created: List[UUID] = field(default_factory=list)
    updated: List[UUID] = field(default_factory=list)
    progress_records: int = 0
    visibility_records: int = 0
    daily_records: int = 0
    failures: List[SyncFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped and not self.failures

    def fail(self, stage: str, error: Exception, target: Optional[str] = None) -> None:
        self.failures.append(SyncFailure(stage=stage, error=str(error), target=target))


class SyncCoordinator:
    """
    Sync driver for one user session.

    At most one pull and one push run at a time; a trigger that arrives
    while a run of the same direction is in flight returns a skipped report.
    Cancellation follows normal asyncio task cancellation, without rollback
    of what was already applied.

    Usage:
        >>> coordinator = SyncCoordinator(session, ApiClient(access_token=token_getter))
        >>> await coordinator.pull()
        >>> report = await coordinator.push()
    """

    def __init__(self, session: UserSession, client: ApiClient):
        self.session = session
        self.client = client
        self._pulling = False
        self._pushing = False

    @property
    def is_syncing(self) -> bool:
        return self._pulling or self._pushing

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    async def pull(self) -> SyncReport:
        """
        Merge remote state into the local stores.

        Raises:
            ApiError: If the wordbook list cannot be fetched; later stages
                only log and record their failures
        """
        report = SyncReport(direction="pull")
        if self._pulling:
            logger.info("⏳ Pull already in progress, skipping")
            report.skipped = True
            return report

        self._pulling = True
        try:
            logger.info(f"🔄 Pulling remote state for user {self.session.user_id}")
            await self._pull_wordbooks(report)
            await self._run_stage(report, "progress", self._pull_progress)
            await self._run_stage(report, "visibility", self._pull_visibility)
            await self._run_stage(report, "daily", self._pull_daily)
            await self._run_stage(report, "profile", self._pull_profile)
            logger.info(
                f"✅ Pull finished: {len(report.pulled)} wordbooks, "
                f"{report.progress_records} progress, {report.visibility_records} visibility records"
            )
            return report
        finally:
            self._pulling = False

    async def _pull_wordbooks(self, report: SyncReport) -> None:
        try:
            remote_books = await self.client.get_wordbooks(include_templates=False)
        except ApiError as e:
            logger.error(f"❌ Failed to pull wordbooks: {e}")
            raise

        logger.info(f"📥 Received {len(remote_books)} wordbooks")
        for book in remote_books:
            if book.is_template:
                continue
            if self.session.wordbooks.is_trashed(book.id):
                logger.debug(f"🗑️ Skipping trashed wordbook: {book.title}")
                continue
            if book.id in self.session.wordbooks:
                self.session.update_wordbook(book)
                logger.debug(f"✏️ Updated: {book.title}")
            else:
                self.session.add_wordbook(book)
                logger.debug(f"➕ Added: {book.title}")
            report.pulled.append(book.id)

    async def _pull_progress(self, report: SyncReport) -> None:
        records = await self.client.get_section_progress()
        for book_id, state in records.items():
            book = self.session.wordbooks.get(book_id)
            if book is None:
                logger.warning(f"⚠️ Progress for unknown wordbook {book_id}, skipping")
                continue
            self.session.progress.set_progress(book_id, state.completed_pages, state.completed_passes)
            self.session.progress.clamp_progress(book_id, book.total_pages, book.target_passes)
            report.progress_records += 1

    async def _pull_visibility(self, report: SyncReport) -> None:
        records = await self.client.get_visibility()
        for entry_id, entry in records.items():
            if not self.session.visibility.apply_remote(entry_id, entry):
                logger.debug(f"Keeping local reset for entry {entry_id}")
                continue
            report.visibility_records += 1

    async def _pull_daily(self, report: SyncReport) -> None:
        records = await self.client.get_daily_progress()
        self.session.daily.merge_remote(records)
        report.daily_records = len(records)

    async def _pull_profile(self, report: SyncReport) -> None:
        remote = await self.client.get_profile()
        local = self.session.profile.profile
        if remote.updated_at is None:
            return
        if local.updated_at is None or remote.updated_at > local.updated_at:
            self.session.profile.set_profile(remote)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def push(self) -> SyncReport:
        """Upload local state; never raises ApiError, see ``report.failures``."""
        report = SyncReport(direction="push")
        if self._pushing:
            logger.info("⏳ Push already in progress, skipping")
            report.skipped = True
            return report

        self._pushing = True
        try:
            logger.info(f"📤 Pushing local state for user {self.session.user_id}")
            synced = await self._push_wordbooks(report)
            await self._run_stage(report, "progress", lambda r: self._push_progress(r, synced))
            await self._run_stage(report, "visibility", lambda r: self._push_visibility(r, synced))
            await self._run_stage(report, "daily", self._push_daily)
            await self._run_stage(report, "profile", self._push_profile)
            if report.failures:
                logger.warning(f"⚠️ Push finished with {len(report.failures)} failures")
            else:
                logger.info("✅ Push finished")
            return report
        finally:
            self._pushing = False

    async def _push_wordbooks(self, report: SyncReport) -> Set[UUID]:
        """PATCH each owned wordbook, creating it on 404. Returns ids now on the server."""
        synced: Set[UUID] = set()
        for book in self.session.wordbooks.wordbooks:
            if book.is_template:
                continue
            try:
                await self._push_wordbook(book, report)
                synced.add(book.id)
            except ApiError as e:
                logger.error(f"❌ Failed to push {book.title}: {e}")
                report.fail("wordbook", e, target=str(book.id))
        return synced

    async def _push_wordbook(self, book: Wordbook, report: SyncReport) -> None:
        try:
            await self.client.update_wordbook(book)
            report.updated.append(book.id)
            logger.debug(f"✅ Updated: {book.title}")
        except NotFoundError:
            await self.client.create_wordbook(book)
            report.created.append(book.id)
            logger.debug(f"➕ Created: {book.title}")

    async def _push_progress(self, report: SyncReport, book_ids: Set[UUID]) -> None:
        records = {
            book.id: self.session.progress.progress(book.id)
            for book in self.session.wordbooks.wordbooks
            if book.id in book_ids
        }
        for batch in chunked(records, PROGRESS_BATCH_SIZE):
            await self.client.upsert_section_progress(batch)
            report.progress_records += len(batch)

    async def _push_visibility(self, report: SyncReport, book_ids: Set[UUID]) -> None:
        visibility = self.session.visibility
        known_entries = {
            entry.id
            for book in self.session.wordbooks.wordbooks
            if book.id in book_ids
            for entry in book.words
        }
        records = {
            entry_id: entry
            for entry_id, entry in visibility.records().items()
            if entry_id in known_entries
        }
        # Resets go out as explicit {showWord: true, showMeaning: true} rows
        resets = visibility.pending_resets() & known_entries
        for entry_id in resets:
            records[entry_id] = visibility.entry(entry_id)

        for batch in chunked(records, VISIBILITY_BATCH_SIZE):
            await self.client.upsert_visibility(batch)
            visibility.mark_resets_synced(entry_id for entry_id in batch if entry_id in resets)
            report.visibility_records += len(batch)

    async def _push_daily(self, report: SyncReport) -> None:
        records = self.session.daily.records()
        for batch in chunked(records, DAILY_BATCH_SIZE):
            await self.client.upsert_daily_progress(batch)
            report.daily_records += len(batch)

    async def _push_profile(self, report: SyncReport) -> None:
        profile = self.session.profile.profile
        if profile.updated_at is None:
            # Never edited locally; keep whatever the server has
            return
        await self.client.update_profile(profile.display_name, profile.avatar_emoji)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def sync(self) -> List[SyncReport]:
        """Pull, then push."""
        pulled = await self.pull()
        pushed = await self.push()
        return [pulled, pushed]

    @staticmethod
    async def _run_stage(
        report: SyncReport,
        stage: str,
        action: Callable[[SyncReport], Awaitable[None]]
    ) -> None:
        try:
            await action(report)
        except ApiError as e:
            logger.error(f"❌ Failed to sync {stage}: {e}")
            report.fail(stage, e)
