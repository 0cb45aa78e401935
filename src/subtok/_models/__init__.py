"""Segmentation algorithms: WordPiece, byte-level BPE, Unigram and SentencePiece BPE."""

from .base import Tokenizer
from .bpe import BPETokenizer
from .sentencepiece_bpe import SentencePieceBPETokenizer
from .unigram import UnigramTokenizer
from .wordpiece import WordPieceTokenizer


__all__ = [
    "Tokenizer",
    "WordPieceTokenizer",
    "BPETokenizer",
    "UnigramTokenizer",
    "SentencePieceBPETokenizer",
]
