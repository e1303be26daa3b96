"""
Word normalization, deduplication and word-list parsing tests
"""
from vocab_api.core.text_utils import clean_meaning, deduplicate_words, normalize_lemma
from vocab_api.core.word_list_parser import load_word_list, parse_word_line, parse_word_list
from vocab_api.schemas.wordbook import WordEntryPayload


def entries(*words):
    return [WordEntryPayload(word=word) for word in words]


class TestDeduplicate:

    def test_normalize_and_meaning_placeholder(self):
        assert normalize_lemma("  Abandon ") == "abandon"
        assert clean_meaning("   ") == "-"
        assert clean_meaning(None) == "-"
        assert clean_meaning(" 放弃 ") == "放弃"

    def test_first_occurrence_wins(self):
        result = deduplicate_words(entries("Run", "run", "walk", "RUN"))
        assert [e.word for e in result.accepted] == ["Run", "walk"]
        assert result.duplicates == ["run", "RUN"]

    def test_existing_lemmas_count_as_duplicates(self):
        result = deduplicate_words(entries("Abandon", "abandon ", "RUN"), existing_lemmas=["run"], base_ordinal=1)
        assert [e.word for e in result.accepted] == ["Abandon"]
        assert result.duplicates == ["abandon", "RUN"]
        assert result.accepted[0].ordinal == 1

    def test_default_ordinals(self):
        batch = deduplicate_words(entries("a", "a", "b"))
        assert [e.ordinal for e in batch.accepted] == [0, 2]

        appended = deduplicate_words(entries("a", "a", "b"), base_ordinal=10)
        assert [e.ordinal for e in appended.accepted] == [10, 11]

    def test_explicit_ordinal_is_kept(self):
        result = deduplicate_words([WordEntryPayload(word="a", ordinal=7)])
        assert result.accepted[0].ordinal == 7


class TestWordListParser:

    def test_bracketed_line(self):
        entry = parse_word_line("abandon [əˈbændən] v. 放弃")
        assert entry.word == "abandon"
        assert entry.meaning == "[əˈbændən] v. 放弃"

    def test_plain_line(self):
        entry = parse_word_line("run   v. 跑")
        assert (entry.word, entry.meaning) == ("run", "v. 跑")

    def test_word_without_meaning(self):
        assert parse_word_line("solo").meaning == "-"

    def test_blank_lines_are_skipped(self):
        assert parse_word_line("   ") is None
        assert [e.word for e in parse_word_list("a 1\n\n  \nb 2\n")] == ["a", "b"]

    def test_load_word_list(self, tmp_path):
        path = tmp_path / "words.txt"
        path.write_text("abandon [əˈbændən] v. 放弃\nability n. 能力\n", encoding="utf-8")
        assert [e.word for e in load_word_list(path)] == ["abandon", "ability"]
