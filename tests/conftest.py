"""Shared vocabulary fixtures for the tokenizer test suite."""

import json

import pytest

import subtok
from subtok._byte_level import BYTE_TO_UNICODE


# WordPiece
# ---------------------------------------------------------------------------

WORDPIECE_VOCAB = [
    "[PAD]",  # 0
    "[UNK]",  # 1
    "[CLS]",  # 2
    "[SEP]",  # 3
    "[MASK]",  # 4
    "un",  # 5
    "##believ",  # 6
    "##able",  # 7
    "hello",  # 8
    "world",  # 9
    "!",  # 10
    ",",  # 11
    "the",  # 12
    "cat",  # 13
    "sat",  # 14
    ".",  # 15
    "##s",  # 16
    "a",  # 17
    "dog",  # 18
    "is",  # 19
    "it",  # 20
]


@pytest.fixture
def wordpiece_vocab_text():
    return "\n".join(WORDPIECE_VOCAB) + "\n"


@pytest.fixture
def wordpiece_tokenizer(wordpiece_vocab_text):
    """Return an uncased BERT-style tokenizer over a tiny vocabulary."""
    return subtok.WordPieceTokenizer.from_vocab_text(wordpiece_vocab_text)


# Byte-level BPE
# ---------------------------------------------------------------------------

CLIP_VOCAB = {
    "!": 0,
    "a</w>": 320,
    "of</w>": 539,
    "photo</w>": 1125,
    "cat</w>": 2368,
    "<|startoftext|>": 49406,
    "<|endoftext|>": 49407,
}

CLIP_MERGES = [
    ("p", "h"),
    ("ph", "o"),
    ("pho", "t"),
    ("phot", "o</w>"),
    ("o", "f</w>"),
    ("c", "a"),
    ("ca", "t</w>"),
]

GPT2_MERGES = [
    ("H", "e"),
    ("He", "l"),
    ("Hel", "l"),
    ("Hell", "o"),
    ("Ġ", "w"),
    ("Ġw", "o"),
    ("Ġwo", "r"),
    ("Ġwor", "l"),
    ("Ġworl", "d"),
]


def merges_text(merges):
    lines = ["#version: 0.2"] + [f"{left} {right}" for left, right in merges]
    return "\n".join(lines) + "\n"


@pytest.fixture
def clip_artifacts():
    """Return ``(vocab_json, merges_txt)`` contents for a CLIP-like model."""
    return json.dumps(CLIP_VOCAB), merges_text(CLIP_MERGES)


@pytest.fixture
def clip_tokenizer(clip_artifacts):
    vocab_json, merges_txt = clip_artifacts
    return subtok.BPETokenizer.from_artifacts(
        vocab_json,
        merges_txt,
        pattern="clip",
        lowercase=True,
        end_of_word_marker="</w>",
        bos_token="<|startoftext|>",
        eos_token="<|endoftext|>",
        pad=True,
        default_max_length=77,
    )


@pytest.fixture
def gpt2_artifacts():
    """
    Return ``(vocab_json, merges_txt)`` for a GPT-2-like model.

    Ids 0-255 are the single-byte symbols, so every input is representable.
    """
    vocab = {BYTE_TO_UNICODE[b]: b for b in range(256)}
    for left, right in GPT2_MERGES:
        vocab[left + right] = len(vocab)
    vocab["<|endoftext|>"] = len(vocab)
    vocab["<|im_start|>"] = len(vocab)
    return json.dumps(vocab), merges_text(GPT2_MERGES)


@pytest.fixture
def gpt2_tokenizer(gpt2_artifacts):
    vocab_json, merges_txt = gpt2_artifacts
    return subtok.BPETokenizer.from_artifacts(
        vocab_json,
        merges_txt,
        added_tokens=["<|endoftext|>", "<|im_start|>"],
        pad=False,
    )


# Unigram
# ---------------------------------------------------------------------------

BYTE_FALLBACK_OFFSET = 41

UNIGRAM_PIECES = {
    0: ("<pad>", 0.0),
    1: ("</s>", 0.0),
    2: ("<unk>", 0.0),
    3: ("▁", -2.0),
    10: ("▁he", -4.5),
    11: ("lo", -5.0),
    12: ("▁hello", -5.0),
    13: ("▁wor", -4.0),
    14: ("ld", -4.0),
    15: ("▁w", -3.0),
    16: ("▁world", -6.0),
    297: ("<start_of_turn>", 0.0),
    298: ("<end_of_turn>", 0.0),
}


def unigram_vocab():
    """Return the ``[piece, score]`` list with fillers and the byte block in place."""
    vocab = []
    for idx in range(299):
        if idx in UNIGRAM_PIECES:
            piece, score = UNIGRAM_PIECES[idx]
        elif BYTE_FALLBACK_OFFSET <= idx < BYTE_FALLBACK_OFFSET + 256:
            piece, score = f"<0x{idx - BYTE_FALLBACK_OFFSET:02X}>", 0.0
        else:
            piece, score = f"<extra_id_{idx}>", -20.0
        vocab.append([piece, score])
    return vocab


@pytest.fixture
def unigram_json():
    """Return a HuggingFace-shaped ``tokenizer.json`` for a Gemma/T5-like model."""
    return json.dumps(
        {
            "added_tokens": [
                {"id": 0, "content": "<pad>", "special": True},
                {"id": 1, "content": "</s>", "special": True},
                {"id": 2, "content": "<unk>", "special": True},
            ],
            "model": {
                "type": "Unigram",
                "unk_id": 2,
                "byte_fallback_offset": BYTE_FALLBACK_OFFSET,
                "vocab": unigram_vocab(),
            },
        }
    )


@pytest.fixture
def unigram_tokenizer(unigram_json):
    return subtok.UnigramTokenizer.from_json(
        unigram_json, added_tokens=["<start_of_turn>", "<end_of_turn>"]
    )


# SentencePiece BPE
# ---------------------------------------------------------------------------

SP_BYTE_OFFSET = 23

SP_PIECES = [
    "<unk>", "<s>", "</s>", "▁", "h", "e", "l", "o", "w", "r", "d",
    "▁h", "ll", "▁he", "▁hell", "▁hello", "▁w", "or", "▁wor", "ld", "▁world",
    "<start_of_turn>", "<end_of_turn>",
]

# both merge spellings found in tokenizer.json files
SP_MERGES = [
    "▁ h", ["l", "l"], "▁h e", ["▁he", "ll"], "▁hell o",
    "▁ w", "o r", ["▁w", "or"], "l d", "▁wor ld",
]


def sentencepiece_vocab():
    """Return the token -> id object with the byte block after the word pieces."""
    vocab = {piece: idx for idx, piece in enumerate(SP_PIECES)}
    for b in range(256):
        vocab[f"<0x{b:02X}>"] = SP_BYTE_OFFSET + b
    return vocab


@pytest.fixture
def sentencepiece_json():
    """Return a HuggingFace-shaped ``tokenizer.json`` for a Llama-like model."""
    return json.dumps(
        {
            "added_tokens": [
                {"id": 0, "content": "<unk>", "special": True},
                {"id": 1, "content": "<s>", "special": True},
                {"id": 2, "content": "</s>", "special": True},
            ],
            "pre_tokenizer": None,
            "decoder": {
                "type": "Sequence",
                "decoders": [{"type": "ByteFallback"}, {"type": "Fuse"}],
            },
            "model": {
                "type": "BPE",
                "unk_token": "<unk>",
                "byte_fallback": True,
                "vocab": sentencepiece_vocab(),
                "merges": SP_MERGES,
            },
        }
    )


@pytest.fixture
def sentencepiece_tokenizer(sentencepiece_json):
    return subtok.SentencePieceBPETokenizer.from_json(
        sentencepiece_json, added_tokens=["<start_of_turn>", "<end_of_turn>"]
    )
