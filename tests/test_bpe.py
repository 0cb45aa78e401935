"""Unit tests for byte-level BPE: CLIP and GPT-2 style configurations."""

import pytest

import subtok
from subtok.errors import ModelLoadError, PatternError, VocabularyError


# CLIP style: lowercased, </w> word ends, start/end tokens, padded
# ---------------------------------------------------------------------------


def test_clip_encode(clip_tokenizer):
    enc = clip_tokenizer.encode("a photo of a cat")
    assert len(enc) == 77
    assert enc.input_ids[:7] == (49406, 320, 1125, 539, 320, 2368, 49407)
    assert enc.input_ids[7:] == (0,) * 70
    assert enc.attention_mask == (1,) * 7 + (0,) * 70
    assert enc.token_type_ids == (0,) * 77


def test_clip_lowercases_and_collapses_whitespace(clip_tokenizer):
    enc = clip_tokenizer.encode("  A   PHOTO\tof a Cat ")
    assert enc.input_ids[:7] == (49406, 320, 1125, 539, 320, 2368, 49407)


def test_clip_truncation_keeps_end_token(clip_tokenizer):
    enc = clip_tokenizer.encode("a photo of a cat", max_length=4)
    assert enc.input_ids == (49406, 320, 1125, 49407)
    assert enc.attention_mask == (1, 1, 1, 1)


def test_clip_padding_to_explicit_length(clip_tokenizer):
    enc = clip_tokenizer.encode("a cat", max_length=10)
    assert enc.input_ids == (49406, 320, 2368, 49407, 0, 0, 0, 0, 0, 0)
    assert sum(enc.attention_mask) == 4


def test_clip_decode_drops_final_word_end(clip_tokenizer):
    ids = clip_tokenizer.encode("a photo of a cat").input_ids[:7]
    assert clip_tokenizer.decode(list(ids)) == "a photo of a cat"


def test_clip_stream_keeps_word_spaces(clip_tokenizer):
    stream = clip_tokenizer.new_stream()
    pieces = [clip_tokenizer.decode(tok, stream) for tok in (49406, 320, 2368, 49407)]
    assert pieces == ["", "a ", "cat ", ""]


def test_clip_encode_pair(clip_tokenizer):
    """Pairs are laid out as ``bos A eos B eos`` then padded with type id 0."""
    enc = clip_tokenizer.encode_pair("a cat", "a photo", max_length=10)
    assert enc.input_ids == (49406, 320, 2368, 49407, 320, 1125, 49407, 0, 0, 0)
    assert enc.token_type_ids == (0, 0, 0, 0, 1, 1, 1, 0, 0, 0)
    assert enc.attention_mask == (1,) * 7 + (0,) * 3


def test_clip_encode_pair_truncates_longer_segment(clip_tokenizer):
    enc = clip_tokenizer.encode_pair("a photo of a cat", "a cat", max_length=8)
    assert enc.input_ids == (49406, 320, 1125, 539, 49407, 320, 2368, 49407)
    assert enc.token_type_ids == (0,) * 5 + (1,) * 3
    assert enc.attention_mask == (1,) * 8


# GPT-2 style: case preserved, no end-of-word marker, padding opted out
# ---------------------------------------------------------------------------


def test_gpt2_merges(gpt2_tokenizer):
    enc = gpt2_tokenizer.encode("Hello world")
    hello = gpt2_tokenizer.token_to_id("Hello")
    world = gpt2_tokenizer.token_to_id("Ġworld")
    assert enc.input_ids == (hello, world)
    assert enc.attention_mask == (1, 1)


def test_gpt2_lowest_rank_first(gpt2_tokenizer):
    """Without a rule for the whole word only the ranked prefixes merge."""
    ids = gpt2_tokenizer.encode("Help").input_ids
    assert [gpt2_tokenizer.id_to_token(tok) for tok in ids] == ["Hel", "p"]


def test_gpt2_roundtrip_preserves_case(gpt2_tokenizer):
    text = "Hello World, HELLO world!"
    ids = gpt2_tokenizer.encode(text).input_ids
    assert gpt2_tokenizer.decode(ids) == text


def test_gpt2_roundtrip_unicode(gpt2_tokenizer):
    text = "café naïve 日本語 🎉"
    ids = gpt2_tokenizer.encode(text).input_ids
    assert gpt2_tokenizer.decode(ids) == text


def test_added_tokens_atomic(gpt2_tokenizer):
    im_start = gpt2_tokenizer.token_to_id("<|im_start|>")
    eot = gpt2_tokenizer.token_to_id("<|endoftext|>")
    hello = gpt2_tokenizer.token_to_id("Hello")

    ids = gpt2_tokenizer.encode("<|im_start|>Hello<|endoftext|>").input_ids
    assert ids == (im_start, hello, eot)
    assert gpt2_tokenizer.decode(ids) == "Hello"


def test_stream_holds_partial_character(gpt2_tokenizer):
    """A character split across byte tokens is emitted once complete."""
    ids = gpt2_tokenizer.encode("日").input_ids
    assert len(ids) == 3

    stream = gpt2_tokenizer.new_stream()
    assert gpt2_tokenizer.decode(ids[0], stream) == ""
    assert gpt2_tokenizer.decode(ids[1], stream) == ""
    assert stream.pending == "日".encode("utf-8")[:2]
    assert gpt2_tokenizer.decode(ids[2], stream) == "日"
    assert stream.flush() == ""


def test_stream_matches_sequence(gpt2_tokenizer):
    text = "Hello 世界 world"
    ids = gpt2_tokenizer.encode(text).input_ids
    stream = gpt2_tokenizer.new_stream()
    streamed = "".join(gpt2_tokenizer.decode(tok, stream) for tok in ids) + stream.flush()
    assert streamed == gpt2_tokenizer.decode(ids) == text


def test_pads_by_default(gpt2_artifacts):
    vocab_json, merges_txt = gpt2_artifacts
    tok = subtok.BPETokenizer.from_artifacts(vocab_json, merges_txt)
    enc = tok.encode("Hello", max_length=8)
    assert len(enc) == 8
    n_pad = enc.attention_mask.count(0)
    assert n_pad == 7
    assert enc.input_ids[8 - n_pad :] == (tok.pad_id,) * n_pad
    assert enc.token_type_ids == (0,) * 8


def test_padding_opt_out(gpt2_tokenizer):
    enc = gpt2_tokenizer.encode("Hello", max_length=8)
    assert len(enc) == 1
    assert enc.attention_mask == (1,)


def test_decode_unknown_id(gpt2_tokenizer):
    with pytest.raises(VocabularyError):
        gpt2_tokenizer.decode([99999])


def test_empty_text(gpt2_tokenizer):
    assert gpt2_tokenizer.encode("").input_ids == ()
    assert gpt2_tokenizer.decode([]) == ""


def test_encode_pair_without_specials(gpt2_tokenizer):
    enc = gpt2_tokenizer.encode_pair("Hello", "Hello")
    assert enc.token_type_ids == (0, 1)


# Construction errors
# ---------------------------------------------------------------------------


def test_missing_special_token(gpt2_artifacts):
    vocab_json, merges_txt = gpt2_artifacts
    with pytest.raises(ModelLoadError):
        subtok.BPETokenizer.from_artifacts(vocab_json, merges_txt, bos_token="<s>")


def test_invalid_pattern(gpt2_artifacts):
    vocab_json, merges_txt = gpt2_artifacts
    with pytest.raises(PatternError):
        subtok.BPETokenizer.from_artifacts(vocab_json, merges_txt, pattern="([a-z")


def test_malformed_merge_line(gpt2_artifacts):
    vocab_json, _ = gpt2_artifacts
    with pytest.raises(ModelLoadError) as exc_info:
        subtok.BPETokenizer.from_artifacts(vocab_json, "#version: 0.2\nH e\nHe l x\n")
    assert exc_info.value.line == 3
