"""
Flat key-value persistence for the local stores.

Keys are namespaced per user (``"{base}.{user_id}"``) so switching accounts
on one device never leaks data. Values are JSON-compatible objects.
Un-namespaced legacy keys are migrated on first load: decoded, written under
the namespaced key, then deleted.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


class KeyValueStorage(ABC):
    """Minimal key-value storage interface (UserDefaults-like)."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` and flush it."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    def contains(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryStorage(KeyValueStorage):
    """In-process storage, used by tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        # Values are round-tripped through JSON so callers can't alias stored state
        self._data: Dict[str, str] = {key: json.dumps(value) for key, value in (initial or {}).items()}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)


class JsonFileStorage(KeyValueStorage):
    """
    All keys in one JSON document on disk.

    Every ``set``/``delete`` rewrites the file through a temp file and
    ``os.replace`` so a crash never leaves a half-written document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Unreadable storage file {self.path}, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


def namespaced_key(base: str, user_id: UUID) -> str:
    return f"{base}.{user_id}"


def load_namespaced(
    storage: KeyValueStorage,
    base_key: str,
    user_id: UUID,
    decode: Callable[[Any], S],
    legacy_key: Optional[str] = None
) -> Optional[S]:
    """
    Load and decode the user's value, migrating the legacy key if needed.

    Args:
        storage: Backing storage
        base_key: Key without the user suffix
        user_id: Owner of the data
        decode: Raw stored value → typed state (may raise on bad data)
        legacy_key: Pre-namespacing key, defaults to ``base_key``

    Returns:
        Decoded state, or None when nothing usable is stored
    """
    key = namespaced_key(base_key, user_id)
    raw = storage.get(key)
    if raw is not None:
        try:
            return decode(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Discarding undecodable value for {key}: {e}")
            return None

    legacy_key = legacy_key or base_key
    legacy_raw = storage.get(legacy_key)
    if legacy_raw is None:
        return None

    try:
        decoded = decode(legacy_raw)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"⚠️ Legacy value under {legacy_key} could not be decoded, leaving it: {e}")
        return None

    storage.set(key, legacy_raw)
    storage.delete(legacy_key)
    logger.info(f"🔄 Migrated legacy key {legacy_key} → {key}")
    return decoded


class NamespacedStore(ABC, Generic[S]):
    """
    Base for per-user stores with an explicit write boundary.

    Subclasses hold their in-memory state in ``self._state`` and implement
    ``_decode``/``_encode``. Every change goes through :meth:`mutate`, which
    applies it and then synchronously persists.
    """

    base_key: str = ""
    legacy_key: Optional[str] = None

    def __init__(self, storage: KeyValueStorage, user_id: UUID):
        self.storage = storage
        self.user_id = user_id
        loaded = load_namespaced(storage, self.base_key, user_id, self._decode, self.legacy_key)
        self._state: S = loaded if loaded is not None else self._empty()
        self._after_load()

    @property
    def storage_key(self) -> str:
        return namespaced_key(self.base_key, self.user_id)

    @abstractmethod
    def _empty(self) -> S:
        ...

    @abstractmethod
    def _decode(self, raw: Any) -> S:
        ...

    @abstractmethod
    def _encode(self, state: S) -> Any:
        ...

    def _after_load(self) -> None:
        """Hook run once after the initial load."""

    def mutate(self, transform: Callable[[S], R]) -> R:
        """Apply ``transform`` to the state in place, persist, return its result."""
        result = transform(self._state)
        self._persist()
        return result

    def _persist(self) -> None:
        self.storage.set(self.storage_key, self._encode(self._state))
