"""Unit tests for batch encoding modes and ordered thread-pool mapping."""

import threading

import pytest

import subtok
from subtok.errors import StrategyError
from subtok.parallel import ParallelMode, map_ordered, resolve_workers

TEXTS = ["hello world", "the cat sat", "", "unbelievable"]


def test_list_parallel_modes():
    assert subtok.list_parallel_modes() == ["auto", "batch", "off"]


@pytest.mark.parametrize("mode", ["auto", "batch", "off", ParallelMode.BATCH])
def test_batch_matches_serial(wordpiece_tokenizer, mode):
    expected = [wordpiece_tokenizer.encode(text, max_length=8) for text in TEXTS]
    result = wordpiece_tokenizer.encode_batch(
        TEXTS, max_length=8, num_workers=4, parallel_mode=mode
    )
    assert result == expected


def test_batch_zero_workers(unigram_tokenizer):
    result = unigram_tokenizer.encode_batch(TEXTS, num_workers=0)
    assert [enc.input_ids for enc in result] == [
        unigram_tokenizer.encode(text).input_ids for text in TEXTS
    ]


def test_batch_empty(gpt2_tokenizer):
    assert gpt2_tokenizer.encode_batch([]) == []


def test_unknown_mode(wordpiece_tokenizer):
    with pytest.raises(StrategyError):
        wordpiece_tokenizer.encode_batch(TEXTS, parallel_mode="threads")


def test_mode_lookup_is_case_insensitive():
    assert ParallelMode.get("BATCH") is ParallelMode.BATCH
    assert ParallelMode.get(ParallelMode.OFF) is ParallelMode.OFF


def test_resolve_workers():
    assert resolve_workers(0) == 1
    assert resolve_workers(3) == 3
    assert resolve_workers(None) >= 1


def test_map_ordered_off_stays_on_caller_thread():
    caller = threading.get_ident()
    idents = map_ordered(lambda _: threading.get_ident(), [1, 2, 3], mode="off")
    assert idents == [caller] * 3


def test_map_ordered_keeps_input_order():
    items = list(range(50))
    assert map_ordered(lambda x: x * 2, items, mode="batch", num_workers=8) == [
        x * 2 for x in items
    ]
