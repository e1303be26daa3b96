"""
Whole-state snapshot sync over an opaque remote blob store.

The snapshot is one JSON document holding every local store of a user. It
is uploaded after local changes (debounced) and merged into the stores on
first launch of a new device.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set
from uuid import UUID

from vocab_client.daily_progress_store import date_key
from vocab_client.models import ProgressState, UserProfile, Wordbook, format_datetime, utc_now
from vocab_client.session import UserSession

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
SNAPSHOT_KEY = "UserData"
UPLOAD_DEBOUNCE_SECONDS = 1.0


class SnapshotError(Exception):
    """Snapshot blob that cannot be decoded or has an unsupported schema."""


class RemoteBlobStore(ABC):
    """Key → bytes store (e.g. a private cloud database record)."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Stored bytes, or None when the key has never been written."""


class InMemoryBlobStore(RemoteBlobStore):
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    async def put(self, key: str, data: bytes) -> None:
        self.blobs[key] = data

    async def get(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)


class SnapshotSync:
    """
    Snapshot upload/merge for one session.

    Usage:
        >>> sync = SnapshotSync(session, blob_store)
        >>> await sync.initial_pull()
        >>> sync.schedule_upload()   # after each local change
    """

    def __init__(
        self,
        session: UserSession,
        blob_store: RemoteBlobStore,
        key: str = SNAPSHOT_KEY,
        debounce: float = UPLOAD_DEBOUNCE_SECONDS
    ):
        self.session = session
        self.blob_store = blob_store
        self.key = key
        self.debounce = debounce
        self._upload_task: Optional[asyncio.Task] = None
        self._applying_remote = False

    # ------------------------------------------------------------------
    # Build / upload
    # ------------------------------------------------------------------

    def build_snapshot(self) -> Dict[str, Any]:
        books = self.session.wordbooks.wordbooks
        return {
            "wordbooks": [book.to_dict() for book in books],
            "progress": {str(book.id): self.session.progress.progress(book.id).to_dict() for book in books},
            "daily": self.session.daily.records(),
            "visibility": self.session.visibility.hidden_id_snapshot(books),
            "profile": self.session.profile.profile.to_dict(),
            "updatedAt": format_datetime(utc_now()),
            "schemaVersion": SCHEMA_VERSION,
        }

    async def upload(self) -> Dict[str, Any]:
        snapshot = self.build_snapshot()
        data = json.dumps(snapshot, ensure_ascii=False).encode("utf-8")
        await self.blob_store.put(self.key, data)
        logger.info(f"📤 Snapshot uploaded at {snapshot['updatedAt']} ({len(data)} bytes)")
        return snapshot

    def schedule_upload(self) -> Optional[asyncio.Task]:
        """
        Upload after ``debounce`` seconds; a newer call replaces a pending one.

        Must be called from a running event loop. Ignored while a remote
        snapshot is being applied.
        """
        if self._applying_remote:
            return None
        if self._upload_task is not None and not self._upload_task.done():
            self._upload_task.cancel()
        self._upload_task = asyncio.get_running_loop().create_task(self._delayed_upload())
        return self._upload_task

    async def _delayed_upload(self) -> None:
        await asyncio.sleep(self.debounce)
        try:
            await self.upload()
        except Exception as e:
            logger.error(f"❌ Snapshot upload failed: {e}")

    # ------------------------------------------------------------------
    # Pull / apply
    # ------------------------------------------------------------------

    async def initial_pull(self) -> bool:
        """
        Fetch and apply the remote snapshot.

        Returns:
            True if a snapshot was applied, False when none is stored

        Raises:
            SnapshotError: Stored blob is undecodable or from a newer schema
        """
        data = await self.blob_store.get(self.key)
        if data is None:
            logger.info("ℹ️ No remote snapshot yet")
            return False
        snapshot = self.decode(data)
        self.apply(snapshot)
        logger.info(f"✅ Snapshot pulled: {snapshot.get('updatedAt')}")
        return True

    @staticmethod
    def decode(data: bytes) -> Dict[str, Any]:
        try:
            snapshot = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotError(f"Undecodable snapshot: {e}")
        if not isinstance(snapshot, dict):
            raise SnapshotError("Snapshot must be a JSON object")
        version = snapshot.get("schemaVersion")
        if version != SCHEMA_VERSION:
            raise SnapshotError(f"Unsupported snapshot schema version: {version}")
        return snapshot

    def apply(self, snapshot: Dict[str, Any]) -> None:
        """
        Merge a decoded snapshot into the session.

        Wordbooks are added or updated (local-only books are kept, trashed
        ones stay in the trash); progress is overwritten and clamped per
        known book; daily totals, visibility and profile are replaced.
        """
        self._applying_remote = True
        try:
            try:
                books = [Wordbook.from_dict(item) for item in snapshot.get("wordbooks", [])]
                progress = {
                    UUID(book_id): ProgressState.from_dict(state)
                    for book_id, state in snapshot.get("progress", {}).items()
                }
                hidden_words: Set[UUID] = set()
                hidden_meanings: Set[UUID] = set()
                for groups in snapshot.get("visibility", {}).values():
                    hidden_words.update(UUID(i) for i in groups.get("hiddenWords", []))
                    hidden_meanings.update(UUID(i) for i in groups.get("hiddenMeanings", []))
                profile = UserProfile.from_dict(snapshot.get("profile") or {})
                daily = {date_key(day): max(0, int(count)) for day, count in snapshot.get("daily", {}).items()}
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise SnapshotError(f"Malformed snapshot: {e}")

            for book in books:
                if self.session.wordbooks.is_trashed(book.id):
                    continue
                if book.id in self.session.wordbooks:
                    self.session.update_wordbook(book)
                else:
                    self.session.add_wordbook(book)

            for book_id, state in progress.items():
                book = self.session.wordbooks.get(book_id)
                if book is None:
                    logger.warning(f"⚠️ Snapshot progress for unknown wordbook {book_id}, skipping")
                    continue
                self.session.progress.set_progress(book_id, state.completed_pages, state.completed_passes)
                self.session.progress.clamp_progress(book_id, book.total_pages, book.target_passes)

            self.session.daily.replace_all(daily)
            self.session.visibility.replace_all(hidden_words, hidden_meanings)
            self.session.profile.set_profile(profile)
        finally:
            self._applying_remote = False
