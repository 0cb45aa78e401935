"""Subtok: subword tokenizers for transformer inference (WordPiece, BPE, Unigram, SentencePiece BPE)."""

from ._models.base import Tokenizer
from ._models.bpe import BPETokenizer
from ._models.sentencepiece_bpe import SentencePieceBPETokenizer
from ._models.unigram import UnigramTokenizer
from ._models.wordpiece import WordPieceTokenizer
from .added_tokens import AddedTokenMatcher
from .encoding import EncodedInput
from .errors import (
    ModelLoadError,
    PatternError,
    SpecialTokenError,
    StrategyError,
    SubtokError,
    TokenizationError,
    VocabularyError,
)
from .factory import (
    clip_tokenizer,
    from_pretrained,
    list_tokenizers,
    load_bpe,
    load_sentencepiece_bpe,
    load_unigram,
    load_wordpiece,
)
from .parallel import ParallelMode, list_parallel_modes
from .pattern import TokenPattern, list_patterns
from .stream import DecodeStream
from .vocab import MergeTable, Vocabulary

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("subtok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Tokenizer",
    "WordPieceTokenizer",
    "BPETokenizer",
    "UnigramTokenizer",
    "SentencePieceBPETokenizer",
    "EncodedInput",
    "Vocabulary",
    "MergeTable",
    "AddedTokenMatcher",
    "DecodeStream",
    "TokenPattern",
    "ParallelMode",
    "SubtokError",
    "SpecialTokenError",
    "TokenizationError",
    "VocabularyError",
    "ModelLoadError",
    "PatternError",
    "StrategyError",
    "load_wordpiece",
    "load_bpe",
    "load_unigram",
    "load_sentencepiece_bpe",
    "clip_tokenizer",
    "from_pretrained",
    "list_tokenizers",
    "list_patterns",
    "list_parallel_modes",
]
