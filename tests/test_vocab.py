"""Unit tests for vocabulary, merge table and added-token parsing."""

import pytest

from subtok.added_tokens import AddedTokenMatcher
from subtok.errors import ModelLoadError, SpecialTokenError, VocabularyError
from subtok.vocab import MergeTable, Vocabulary


# Vocabulary
# ---------------------------------------------------------------------------


def test_from_lines_uses_line_numbers():
    vocab = Vocabulary.from_lines("[PAD]\n\nhello\n##lo\n")
    assert vocab.id_of("[PAD]") == 0
    assert vocab.id_of("hello") == 2
    assert vocab.token_of(3) == "##lo"
    assert len(vocab) == 3
    assert not vocab.has_id(1)


def test_from_lines_duplicate_token():
    with pytest.raises(ModelLoadError) as exc_info:
        Vocabulary.from_lines("a\nb\na\n")
    assert exc_info.value.line == 3


def test_from_lines_splits_on_line_feed_only():
    """NEL inside a token neither ends the line nor shifts later ids."""
    vocab = Vocabulary.from_lines("[PAD]\na\x85b\nhello\n")
    assert vocab.get("hello") == 2
    assert vocab.get("a\x85b") == 1
    assert len(vocab) == 3


@pytest.mark.parametrize("sep", ["\u2028", "\u2029", "\x1c", "\x1d", "\x1e"])
def test_from_lines_keeps_separator_characters(sep):
    vocab = Vocabulary.from_lines(f"x{sep}y\nz\n")
    assert vocab.id_of(f"x{sep}y") == 0
    assert vocab.id_of("z") == 1


def test_from_lines_trims_ascii_only():
    vocab = Vocabulary.from_lines("[PAD]\r\n\u3000\r\n  hello\t\r\n")
    assert vocab.id_of("\u3000") == 1
    assert vocab.id_of("hello") == 2


def test_from_json_sparse_ids():
    vocab = Vocabulary.from_json('{"!": 0, "a</w>": 320}')
    assert vocab.get("a</w>") == 320
    assert vocab.get("b</w>") is None
    assert "a</w>" in vocab
    assert vocab.max_token_length == 5


@pytest.mark.parametrize(
    "text",
    ['["a", "b"]', '{"a": -1}', '{"a": "1"}', '{"a": true}', '{"a": 0, "b": 0}', "{"],
)
def test_from_json_rejects_malformed(text):
    with pytest.raises(ModelLoadError):
        Vocabulary.from_json(text)


def test_lookup_errors():
    vocab = Vocabulary.from_pieces(["a", "b"])
    with pytest.raises(VocabularyError):
        vocab.id_of("c")
    with pytest.raises(VocabularyError) as exc_info:
        vocab.token_of(7)
    assert exc_info.value.invalid_tok == 7


def test_from_pieces_duplicate():
    with pytest.raises(ModelLoadError):
        Vocabulary.from_pieces(["a", "a"])


# Merge table
# ---------------------------------------------------------------------------


def test_merges_skip_header_and_blank_lines():
    merges = MergeTable.from_text("#version: 0.2\n\np h\nph o\n")
    assert merges.rank("p", "h") == 0
    assert merges.rank("ph", "o") == 1
    assert merges.rank("h", "p") is None
    assert len(merges) == 2


def test_merges_duplicate_keeps_first_rank():
    merges = MergeTable.from_text("a b\nc d\na b\n")
    assert merges.rank("a", "b") == 0
    assert merges.rank("c", "d") == 1


def test_merges_split_on_line_feed_only():
    merges = MergeTable.from_text("#version: 0.2\r\na\x85 b\r\n\u2028 c\n")
    assert merges.rank("a\x85", "b") == 0
    assert merges.rank("\u2028", "c") == 1


@pytest.mark.parametrize("line", ["abc", "a b c", "a  b"])
def test_merges_malformed_line(line):
    with pytest.raises(ModelLoadError) as exc_info:
        MergeTable.from_text(f"x y\n{line}\n")
    assert exc_info.value.line == 2


def test_merges_from_pairs():
    merges = MergeTable.from_pairs([("a", "b"), ("ab", "c")])
    assert ("ab", "c") in merges
    assert merges.rank("ab", "c") == 1


# Added tokens
# ---------------------------------------------------------------------------


def test_matcher_splits_in_order():
    matcher = AddedTokenMatcher([("<s>", 1), ("</s>", 2)])
    assert matcher.split("<s>hi there</s>") == [("<s>", 1), ("hi there", None), ("</s>", 2)]


def test_matcher_longest_first():
    matcher = AddedTokenMatcher([("<|end|>", 5), ("<|end|>x", 6)])
    assert matcher.split("a<|end|>xb") == [("a", None), ("<|end|>x", 6), ("b", None)]


def test_matcher_escapes_metacharacters():
    matcher = AddedTokenMatcher([("<|endoftext|>", 50256)])
    assert matcher.split("a|b") == [("a|b", None)]
    assert matcher.split("<|endoftext|>") == [("<|endoftext|>", 50256)]


def test_matcher_empty():
    matcher = AddedTokenMatcher()
    assert matcher.split("") == []
    assert matcher.split("text") == [("text", None)]
    assert len(matcher) == 0


def test_matcher_conflicting_ids():
    with pytest.raises(SpecialTokenError):
        AddedTokenMatcher([("<s>", 1), ("<s>", 2)])


def test_matcher_empty_token():
    with pytest.raises(SpecialTokenError):
        AddedTokenMatcher([("", 1)])
