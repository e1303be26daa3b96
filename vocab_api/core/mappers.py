"""
ORM row → response schema mappers.
"""
from typing import Iterable

from vocab_api.models.wordbook import Wordbook, WordEntry
from vocab_api.schemas.wordbook import WordEntryResponse, WordbookResponse


def map_word_entry(row: WordEntry) -> WordEntryResponse:
    return WordEntryResponse(
        id=row.id,
        wordbookId=row.wordbook_id,
        word=row.lemma,
        meaning=row.definition,
        ordinal=row.ordinal,
        updatedAt=row.updated_at
    )


def _entry_sort_key(row: WordEntry):
    # created_at breaks ordinal ties; unflushed rows may not have one yet
    return (row.ordinal, row.created_at.isoformat() if row.created_at else "")


def map_wordbook(row: Wordbook, entries: Iterable[WordEntry] = None) -> WordbookResponse:
    """Map a wordbook and its entries, entries sorted by ordinal then creation time."""
    if entries is None:
        entries = row.entries
    return WordbookResponse(
        id=row.id,
        title=row.title,
        subtitle=row.subtitle,
        targetPasses=row.target_passes,
        isTemplate=row.is_template,
        templateVersion=row.template_version,
        createdAt=row.created_at,
        updatedAt=row.updated_at,
        words=[map_word_entry(entry) for entry in sorted(entries, key=_entry_sort_key)]
    )
