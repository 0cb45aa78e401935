"""Byte-level BPE tokenizer (GPT-2, CLIP, RoBERTa, Whisper)."""

import logging
from collections.abc import Iterable
from typing import override

import regex as re

from .._byte_level import byte_decode, byte_encode
from ..errors import ModelLoadError
from ..pattern import compile_pattern
from ..stream import DecodeStream
from ..types import Token
from ..vocab import MergeTable, Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class BPETokenizer(Tokenizer):
    """
    Tokenizer that splits text with a regex, maps bytes to visible characters
    and applies ranked byte-pair merges.

    Pipeline per plain-text span:

    1. strip, collapse whitespace runs to one space, optionally lowercase
    2. split into words with the pre-tokenization regex
    3. map each UTF-8 byte of a word to its GPT-2 visible character
    4. repeatedly merge the adjacent pair with the lowest merge rank
       (the optional end-of-word marker is glued to the last symbol first)
    5. look the resulting symbols up in the vocabulary

    Because every byte has a representative, no input character is
    unrepresentable. Padding is on by default: every encoding has exactly
    ``max_length`` positions, padded with ``pad_id`` and attention mask 0.
    Pass ``pad=False`` for unpadded, GPT-2 style output.

    .. code-block:: python

        tok = BPETokenizer.from_artifacts(vocab_json, merges_txt)
        enc = tok.encode("Hello world")
        tok.decode(enc.input_ids)  # "Hello world"
    """

    TOKENIZER_TYPE = "bpe"

    def __init__(
        self,
        vocab: Vocabulary,
        merges: MergeTable,
        *,
        pattern: str = "gpt2",
        lowercase: bool = False,
        end_of_word_marker: str | None = None,
        bos_token: str | None = None,
        eos_token: str | None = None,
        unk_token: str | None = None,
        pad: bool = True,
        pad_id: Token = 0,
        added_tokens: Iterable[str] = (),
        default_max_length: int = 512,
    ) -> None:
        """
        :param vocab: JSON token -> id vocabulary.
        :param merges: Ranked merge rules.
        :param pattern: Built-in pattern name or a raw regex for word splitting.
        :param end_of_word_marker: Suffix glued to the last symbol of every word (``</w>`` for CLIP).
        :param added_tokens: Vocabulary strings matched atomically (e.g. ``<|im_start|>``).
        :raises ModelLoadError: If a special or added token is missing from the vocabulary.
        :raises PatternError: If ``pattern`` is not a valid regex.
        """
        extra: list[tuple[str, Token]] = []
        for seq in added_tokens:
            idx = vocab.get(seq)
            if idx is None:
                raise ModelLoadError(f"added token {seq!r} missing from vocabulary")
            extra.append((seq, idx))

        super().__init__(
            vocab,
            bos_token=bos_token,
            eos_token=eos_token,
            pad=pad,
            pad_id=pad_id,
            added_tokens=extra,
            default_max_length=default_max_length,
        )
        self.merges = merges
        self.compiled_pat: re.Pattern[str] = compile_pattern(pattern)
        self.lowercase = lowercase
        self.end_of_word_marker = end_of_word_marker
        self.unk_id = self._require_id(unk_token)

        log.info(
            f"bpe tokenizer ready: {len(vocab)} tokens, {len(merges)} merge rules, "
            f"{len(self.added_tokens)} added tokens"
        )

    @classmethod
    def from_artifacts(
        cls, vocab_json: str, merges_text: str, **kwargs
    ) -> "BPETokenizer":
        """Build from the contents of ``vocab.json`` and ``merges.txt``."""
        return cls(Vocabulary.from_json(vocab_json), MergeTable.from_text(merges_text), **kwargs)

    @override
    def _tokenize_span(self, text: str, is_first: bool) -> list[Token]:
        processed = _WHITESPACE.sub(" ", text.strip())
        if self.lowercase:
            processed = processed.lower()

        ids: list[Token] = []
        for m in self.compiled_pat.finditer(processed):
            for symbol in self._bpe(byte_encode(m.group(0))):
                idx = self.vocab.get(symbol)
                if idx is None:
                    if self.unk_id is None:
                        log.debug(f"bpe symbol {symbol!r} not in vocabulary, dropped")
                        continue
                    idx = self.unk_id
                ids.append(idx)
        return ids

    def _bpe(self, word: str) -> list[str]:
        """Merge the symbols of one byte-encoded word by ascending merge rank."""
        if not word:
            return []

        symbols = list(word)
        if self.end_of_word_marker:
            symbols[-1] += self.end_of_word_marker
        return self.merges.apply(symbols)

    @override
    def _decode_ids(self, ids: list[Token]) -> str:
        chunks: list[bytes] = []
        ends_with_marker = False
        for tok in ids:
            if self.added_tokens.is_added_id(tok):
                continue
            data, ends_with_marker = self._token_bytes(tok)
            chunks.append(data)
        text = b"".join(chunks).decode("utf-8", errors="replace")
        # the last word's marker closes the text rather than separating words
        if ends_with_marker:
            text = text[:-1]
        return text

    @override
    def _decode_token(self, tok: Token, stream: DecodeStream) -> str:
        """
        Streamed pieces keep the space produced by every end-of-word marker,
        including the last one.
        """
        if self.added_tokens.is_added_id(tok):
            return ""
        data, _ = self._token_bytes(tok)
        return stream.feed(data)

    def _token_bytes(self, tok: Token) -> tuple[bytes, bool]:
        """Raw bytes of one token; an end-of-word marker becomes a trailing space."""
        token = self.vocab.token_of(tok)
        marker = self.end_of_word_marker
        if marker and token.endswith(marker):
            return byte_decode(token[: -len(marker)]) + b" ", True
        return byte_decode(token), False

