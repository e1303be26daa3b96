"""
Core utilities for the API: word normalization/deduplication and row mappers.
"""
from .text_utils import normalize_lemma, clean_meaning, deduplicate_words, DedupResult, CleanEntry
from .mappers import map_word_entry, map_wordbook

__all__ = [
    # Text Processing
    "normalize_lemma",
    "clean_meaning",
    "deduplicate_words",
    "DedupResult",
    "CleanEntry",
    # Mapping
    "map_word_entry",
    "map_wordbook",
]
