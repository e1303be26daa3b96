"""
Client-side data models.

Value types for wordbooks, page/pass progress, visibility and trash, plus the
pagination helpers shared by the stores.
"""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, TypeVar
from uuid import UUID, uuid4

PAGE_SIZE = 10
TRASH_RETENTION = timedelta(days=30)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 string → aware datetime (``Z`` accepted, naive assumed UTC)."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def total_pages(word_count: int, page_size: int = PAGE_SIZE) -> int:
    """
    Number of pages for ``word_count`` words, never less than 1.

    Example:
        >>> total_pages(0), total_pages(10), total_pages(11)
        (1, 1, 2)
    """
    if word_count <= 0:
        return 1
    return max(1, math.ceil(word_count / page_size))


def paginate(items: Sequence[T], page_size: int = PAGE_SIZE) -> List[List[T]]:
    """Split items into consecutive pages of ``page_size``."""
    if page_size <= 0:
        return [list(items)]
    return [list(items[i:i + page_size]) for i in range(0, len(items), page_size)]


@dataclass(frozen=True)
class WordEntry:
    """One word and its meaning. Identity is ``id``."""
    word: str
    meaning: str
    id: UUID = field(default_factory=uuid4)
    ordinal: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": str(self.id), "word": self.word, "meaning": self.meaning, "ordinal": self.ordinal}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordEntry":
        return cls(
            id=UUID(data["id"]),
            word=data["word"],
            meaning=data.get("meaning", ""),
            ordinal=data.get("ordinal", 0)
        )


@dataclass(frozen=True)
class Wordbook:
    """
    A wordbook (called a "section" in the app UI).

    Attributes:
        id: Wordbook id, shared with the backend
        title: Display title
        subtitle: Optional secondary line
        target_passes: How many full read-throughs complete the book
        is_template: Shared read-only book
        words: Entries in display order
    """
    title: str
    id: UUID = field(default_factory=uuid4)
    subtitle: Optional[str] = None
    target_passes: int = 1
    is_template: bool = False
    words: List[WordEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.words))

    def pages(self) -> List[List[WordEntry]]:
        return paginate(self.words)

    def updating_words(self, words: List[WordEntry]) -> "Wordbook":
        return replace(self, words=list(words), updated_at=utc_now())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "subtitle": self.subtitle,
            "targetPasses": self.target_passes,
            "isTemplate": self.is_template,
            "words": [entry.to_dict() for entry in self.words],
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Wordbook":
        """Decode a stored/snapshot wordbook or an API ``WordbookResponse``."""
        return cls(
            id=UUID(data["id"]),
            title=data["title"],
            subtitle=data.get("subtitle"),
            target_passes=max(1, int(data.get("targetPasses", 1))),
            is_template=bool(data.get("isTemplate", False)),
            words=[WordEntry.from_dict(entry) for entry in data.get("words", [])],
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class ProgressState:
    """
    Page/pass progress through one wordbook.

    ``completed_pages`` counts pages finished in the current pass;
    ``completed_passes`` counts full read-throughs.
    """
    completed_pages: int = 0
    completed_passes: int = 0

    def is_finished(self, total_pages: int, target_passes: int) -> bool:
        return self.completed_passes >= target_passes and self.completed_pages >= total_pages

    def clamped(self, total_pages: int, target_passes: int) -> "ProgressState":
        """
        Normalize against the book's current shape. Idempotent.

        Passes are capped at the target; pages at the page count, and a
        finished book always shows full page coverage.
        """
        passes = min(self.completed_passes, target_passes)
        if total_pages <= 0:
            return ProgressState(0, passes)
        pages = min(self.completed_pages, total_pages)
        if passes >= target_passes:
            pages = total_pages
        return ProgressState(pages, passes)

    def after_page_completed(self, total_pages: int, page_index: int, target_passes: int) -> "ProgressState":
        """State after the reader finishes page ``page_index``."""
        if total_pages <= 0 or self.is_finished(total_pages, target_passes):
            return self

        next_page = page_index + 1
        if next_page >= total_pages:
            passes = self.completed_passes + 1
            if passes >= target_passes:
                return ProgressState(total_pages, target_passes)
            return ProgressState(0, passes)
        return ProgressState(max(self.completed_pages, next_page), self.completed_passes)

    def next_page_index(self, total_pages: int, target_passes: int) -> int:
        if total_pages <= 0:
            return 0
        if self.completed_passes >= target_passes:
            return total_pages - 1
        return min(self.completed_pages, total_pages - 1)

    def to_dict(self) -> Dict[str, int]:
        return {"completedPages": self.completed_pages, "completedPasses": self.completed_passes}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressState":
        return cls(
            completed_pages=max(0, int(data.get("completedPages", 0))),
            completed_passes=max(0, int(data.get("completedPasses", 0)))
        )


@dataclass(frozen=True)
class VisibilityEntry:
    show_word: bool = True
    show_meaning: bool = True

    @property
    def is_default(self) -> bool:
        return self.show_word and self.show_meaning

    def to_dict(self) -> Dict[str, bool]:
        return {"showWord": self.show_word, "showMeaning": self.show_meaning}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisibilityEntry":
        return cls(show_word=bool(data.get("showWord", True)), show_meaning=bool(data.get("showMeaning", True)))


@dataclass(frozen=True)
class TrashedWordbook:
    """A deleted wordbook kept for restore until the retention window passes."""
    wordbook: Wordbook
    deleted_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"wordbook": self.wordbook.to_dict(), "deletedAt": format_datetime(self.deleted_at)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrashedWordbook":
        return cls(wordbook=Wordbook.from_dict(data["wordbook"]), deleted_at=parse_datetime(data["deletedAt"]))


def is_expired(item: TrashedWordbook, now: datetime, retention: timedelta = TRASH_RETENTION) -> bool:
    """True once ``item`` has been in the trash for longer than ``retention``."""
    return now - item.deleted_at >= retention


@dataclass(frozen=True)
class UserProfile:
    display_name: str = "学习者"
    avatar_emoji: str = "🎓"
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "displayName": self.display_name,
            "avatarEmoji": self.avatar_emoji,
            "updatedAt": format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        defaults = cls()
        return cls(
            display_name=data.get("displayName") or defaults.display_name,
            avatar_emoji=data.get("avatarEmoji") or defaults.avatar_emoji,
            updated_at=parse_datetime(data.get("updatedAt")),
        )
