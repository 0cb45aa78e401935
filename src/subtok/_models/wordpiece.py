"""WordPiece tokenizer (BERT, DistilBERT, MiniLM)."""

import logging
import unicodedata
from collections.abc import Iterable
from typing import Final, override

from ..errors import ModelLoadError
from ..stream import DecodeStream
from ..types import Token
from ..vocab import Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)

# spaces glued back onto punctuation and contractions after joining words
_CLEANUP_PAIRS: Final[tuple[tuple[str, str], ...]] = (
    (" .", "."),
    (" ?", "?"),
    (" !", "!"),
    (" ,", ","),
    (" ' ", "'"),
    (" n't", "n't"),
    (" 'm", "'m"),
    (" 's", "'s"),
    (" 've", "'ve"),
    (" 're", "'re"),
)


class WordPieceTokenizer(Tokenizer):
    """
    Greedy longest-match-first subword tokenizer.

    Input is lowercased, split on whitespace and unicode punctuation (each
    punctuation character is a word of its own), then every word is covered
    left to right by the longest vocabulary prefix; non-initial pieces carry
    the ``##`` continuation prefix. A word that cannot be fully covered maps to
    a single ``[UNK]``.

    Single text: ``[CLS] tokens [SEP]``. Pair: ``[CLS] a [SEP] b [SEP]``.
    Output is never padded.

    .. code-block:: python

        tok = WordPieceTokenizer.from_vocab_text(Path("vocab.txt").read_text())
        enc = tok.encode("Hello world!", max_length=128)
    """

    TOKENIZER_TYPE = "wordpiece"

    def __init__(
        self,
        vocab: Vocabulary,
        *,
        lowercase: bool = True,
        cls_token: str = "[CLS]",
        sep_token: str = "[SEP]",
        unk_token: str = "[UNK]",
        pad_token: str = "[PAD]",
        mask_token: str = "[MASK]",
        continuation_prefix: str = "##",
        max_input_chars_per_word: int = 100,
        added_tokens: Iterable[str] = (),
        default_max_length: int = 512,
    ) -> None:
        """
        :param vocab: Line-delimited vocabulary (line number = id).
        :param lowercase: Lowercase input before splitting (uncased checkpoints).
        :param added_tokens: Extra vocabulary strings matched atomically.
        :param max_input_chars_per_word: Longer words map straight to ``[UNK]``.
        :raises ModelLoadError: If ``[CLS]``, ``[SEP]``, ``[UNK]`` or an added
            token is missing from the vocabulary.
        """
        unk_id = vocab.get(unk_token)
        if unk_id is None:
            raise ModelLoadError(f"special token {unk_token!r} missing from vocabulary")

        extra: list[tuple[str, Token]] = []
        # optional specials are atomic when the vocabulary defines them
        for seq in (unk_token, pad_token, mask_token):
            idx = vocab.get(seq)
            if idx is not None:
                extra.append((seq, idx))
        for seq in added_tokens:
            idx = vocab.get(seq)
            if idx is None:
                raise ModelLoadError(f"added token {seq!r} missing from vocabulary")
            extra.append((seq, idx))

        super().__init__(
            vocab,
            bos_token=cls_token,
            eos_token=sep_token,
            pad=False,
            added_tokens=extra,
            default_max_length=default_max_length,
        )
        self.lowercase = lowercase
        self.unk_id: Token = unk_id
        self.continuation_prefix = continuation_prefix
        self.max_input_chars_per_word = max_input_chars_per_word

        log.info(
            f"wordpiece tokenizer ready: {len(vocab)} tokens, "
            f"{len(self.added_tokens)} added tokens"
        )

    @classmethod
    def from_vocab_text(cls, text: str, **kwargs) -> "WordPieceTokenizer":
        """Build from the content of a ``vocab.txt`` file."""
        return cls(Vocabulary.from_lines(text), **kwargs)

    @override
    def _tokenize_span(self, text: str, is_first: bool) -> list[Token]:
        ids: list[Token] = []
        for word in self._basic_tokenize(text):
            ids.extend(self._wordpiece(word))
        return ids

    def _basic_tokenize(self, text: str) -> list[str]:
        """Split on whitespace and punctuation; punctuation chars stand alone."""
        if self.lowercase:
            text = text.lower()

        words: list[str] = []
        current: list[str] = []
        for c in text.strip():
            if c.isspace():
                if current:
                    words.append("".join(current))
                    current = []
            elif _is_punctuation(c):
                if current:
                    words.append("".join(current))
                    current = []
                words.append(c)
            else:
                current.append(c)
        if current:
            words.append("".join(current))
        return words

    def _wordpiece(self, word: str) -> list[Token]:
        """Cover ``word`` with the longest vocabulary prefixes, or return ``[UNK]``."""
        if len(word) > self.max_input_chars_per_word:
            return [self.unk_id]

        ids: list[Token] = []
        max_piece = self.vocab.max_token_length
        start = 0
        while start < len(word):
            # no vocabulary entry is longer than max_piece, so skip impossible ends
            end = min(len(word), start + max_piece)
            found: Token | None = None
            while start < end:
                piece = word[start:end]
                if start > 0:
                    piece = self.continuation_prefix + piece
                found = self.vocab.get(piece)
                if found is not None:
                    break
                end -= 1
            if found is None:
                # the whole word is unknown, partial matches are discarded
                return [self.unk_id]
            ids.append(found)
            start = end
        return ids

    @override
    def _decode_ids(self, ids: list[Token]) -> str:
        text = "".join(self._piece_text(tok) for tok in ids).lstrip(" ")
        for before, after in _CLEANUP_PAIRS:
            text = text.replace(before, after)
        return text

    @override
    def _decode_token(self, tok: Token, stream: DecodeStream) -> str:
        return stream.feed(self._piece_text(tok).encode("utf-8"))

    @override
    def new_stream(self) -> DecodeStream:
        return DecodeStream(strip_leading_space=True)

    def _piece_text(self, tok: Token) -> str:
        """Text contributed by one id: ``" word"``, ``"piece"`` for ``##piece``, or ``""``."""
        if self.added_tokens.is_added_id(tok):
            return ""
        token = self.vocab.token_of(tok)
        if token.startswith(self.continuation_prefix):
            return token[len(self.continuation_prefix) :]
        return " " + token


def _is_punctuation(c: str) -> bool:
    """Unicode punctuation: categories Pc, Pd, Pe, Pf, Pi, Po, Ps."""
    return unicodedata.category(c).startswith("P")
