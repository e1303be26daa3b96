"""
Plain-text word list parsing for template wordbooks.

One entry per line, either ``word [phonetic] meaning`` (everything from the
first ``[`` is the meaning) or ``word meaning`` split on the first whitespace.
"""
import logging
from pathlib import Path
from typing import List, Optional

from vocab_api.core.text_utils import clean_meaning
from vocab_api.schemas.wordbook import WordEntryPayload

logger = logging.getLogger(__name__)


def parse_word_line(line: str) -> Optional[WordEntryPayload]:
    """
    Parse one line of a word list.

    Example:
        >>> parse_word_line("abandon [əˈbændən] v. 放弃").meaning
        '[əˈbændən] v. 放弃'
        >>> parse_word_line("run v. 跑").word
        'run'
    """
    trimmed = line.strip()
    if not trimmed:
        return None

    bracket = trimmed.find("[")
    if bracket != -1:
        word = trimmed[:bracket].strip()
        meaning = trimmed[bracket:].strip()
    else:
        parts = trimmed.split(None, 1)
        word = parts[0]
        meaning = parts[1].strip() if len(parts) > 1 else ""

    if not word:
        return None
    return WordEntryPayload(word=word, meaning=clean_meaning(meaning))


def parse_word_list(text: str) -> List[WordEntryPayload]:
    """Parse every non-empty line; unparseable lines are skipped."""
    entries = []
    for line in text.splitlines():
        entry = parse_word_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def load_word_list(path: Path) -> List[WordEntryPayload]:
    """Read and parse a UTF-8 word list file."""
    text = Path(path).read_text(encoding="utf-8")
    entries = parse_word_list(text)
    logger.info(f"📄 Parsed {len(entries)} entries from {path}")
    return entries
