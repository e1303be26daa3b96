"""
Text utilities for word entries.
Includes lemma normalization and the case-insensitive word deduplication
shared by wordbook creation, bulk import and full word-list replacement.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from vocab_api.schemas.wordbook import WordEntryPayload

logger = logging.getLogger(__name__)

MEANING_PLACEHOLDER = "-"


def normalize_lemma(word: str) -> str:
    """
    Dedup key for a word: trimmed and lower-cased.

    Example:
        >>> normalize_lemma("  Abandon ")
        'abandon'
    """
    return word.strip().lower()


def clean_meaning(meaning: Optional[str]) -> str:
    """Trimmed meaning, or the ``"-"`` placeholder when blank."""
    cleaned = (meaning or "").strip()
    return cleaned or MEANING_PLACEHOLDER


@dataclass
class CleanEntry:
    """A word entry that survived deduplication, ready to be written."""
    word: str
    meaning: str
    ordinal: int
    id: Optional[object] = None


@dataclass
class DedupResult:
    """
    Outcome of a dedup pass.

    Attributes:
        accepted: Entries to write, in submission order
        duplicates: Rejected words (trimmed, original casing), in submission order
    """
    accepted: List[CleanEntry] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)


def deduplicate_words(
    entries: Iterable[WordEntryPayload],
    existing_lemmas: Iterable[str] = (),
    base_ordinal: Optional[int] = None
) -> DedupResult:
    """
    Remove duplicate words, first occurrence wins.

    A word is a duplicate when its normalized form is already in
    ``existing_lemmas`` or appeared earlier in the same batch. Empty words are
    skipped silently.

    Args:
        entries: Submitted entries
        existing_lemmas: Words already persisted in the wordbook
        base_ordinal: When given, default ordinals continue from this value
            (``base_ordinal + accepted so far``); otherwise the batch index is used

    Returns:
        DedupResult with the accepted entries and the rejected words

    Example:
        >>> result = deduplicate_words(
        ...     [WordEntryPayload(word="Abandon"), WordEntryPayload(word="abandon "),
        ...      WordEntryPayload(word="RUN")],
        ...     existing_lemmas=["run"],
        ...     base_ordinal=1
        ... )
        >>> [e.word for e in result.accepted], result.duplicates
        (['Abandon'], ['abandon', 'RUN'])
    """
    existing: Set[str] = {normalize_lemma(lemma) for lemma in existing_lemmas}
    seen: Set[str] = set()
    result = DedupResult()

    for index, entry in enumerate(entries):
        word = entry.word.strip()
        if not word:
            continue

        key = normalize_lemma(word)
        if key in existing or key in seen:
            result.duplicates.append(word)
            continue
        seen.add(key)

        if entry.ordinal is not None:
            ordinal = entry.ordinal
        elif base_ordinal is not None:
            ordinal = base_ordinal + len(result.accepted)
        else:
            ordinal = index

        result.accepted.append(CleanEntry(
            word=word,
            meaning=clean_meaning(entry.meaning),
            ordinal=ordinal,
            id=entry.id
        ))

    logger.info(f"🔍 Deduplicated: {len(result.accepted) + len(result.duplicates)} → {len(result.accepted)} unique words")
    return result
