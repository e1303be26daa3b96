"""Models package."""
from vocab_api.database import Base
from vocab_api.models.wordbook import Wordbook, WordEntry
from vocab_api.models.progress import SectionProgress, DailyProgress
from vocab_api.models.visibility import WordVisibility
from vocab_api.models.profile import UserProfile

__all__ = [
    "Base",
    "Wordbook",
    "WordEntry",
    "SectionProgress",
    "DailyProgress",
    "WordVisibility",
    "UserProfile",
]
