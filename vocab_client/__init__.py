"""
Client-side core: per-user local stores, the backend API client and sync.
"""
from .models import PAGE_SIZE, ProgressState, TrashedWordbook, UserProfile, VisibilityEntry, Wordbook, WordEntry
from .storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from .session import UserSession
from .api_client import ApiClient, ApiError
from .sync_coordinator import SyncCoordinator, SyncReport
from .snapshot_sync import InMemoryBlobStore, RemoteBlobStore, SnapshotSync

__all__ = [
    # Models
    "PAGE_SIZE",
    "ProgressState",
    "TrashedWordbook",
    "UserProfile",
    "VisibilityEntry",
    "Wordbook",
    "WordEntry",
    # Storage
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "UserSession",
    # Remote
    "ApiClient",
    "ApiError",
    "SyncCoordinator",
    "SyncReport",
    "InMemoryBlobStore",
    "RemoteBlobStore",
    "SnapshotSync",
]
