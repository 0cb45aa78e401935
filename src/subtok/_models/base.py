"""
Base tokenizer interface shared by the WordPiece, BPE, Unigram and SentencePiece BPE segmenters.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import overload

from ..added_tokens import AddedTokenMatcher
from ..encoding import EncodedInput
from ..errors import ModelLoadError, TokenizationError
from ..parallel import ParallelMode, ParallelModeName, map_ordered
from ..stream import DecodeStream
from ..types import Token
from ..vocab import Vocabulary

log = logging.getLogger(__name__)


class Tokenizer(ABC):
    """
    Abstract base class for segmenters.

    Subclasses provide the algorithm-specific segmentation of a plain-text
    span and the id -> text reversal. The base class owns everything else:
    added-token matching, special-token wrapping, truncation, padding and
    the ``EncodedInput`` contract.

    Instances hold no mutable state after construction and may be shared
    freely across threads. Streaming decode state lives in ``DecodeStream``
    objects owned by the caller.
    """

    TOKENIZER_TYPE: str = "base"

    def __init__(
        self,
        vocab: Vocabulary,
        *,
        bos_token: str | None = None,
        eos_token: str | None = None,
        pad: bool = False,
        pad_id: Token = 0,
        added_tokens: Iterable[tuple[str, Token]] = (),
        default_max_length: int = 512,
    ) -> None:
        """
        :param vocab: Parsed vocabulary; may be shared with other tokenizers.
        :param bos_token: Token prepended to every sequence, if any.
        :param eos_token: Token appended after each sequence, if any.
        :param pad: Pad every encoding to ``max_length`` with ``pad_id``.
        :param pad_id: Id used for padding positions.
        :param added_tokens: ``(content, id)`` pairs matched atomically in raw input.
        :param default_max_length: Length used when ``max_length`` is omitted.
        :raises ModelLoadError: If a configured special token is not in the vocabulary.
        """
        self.vocab = vocab
        self.bos_id = self._require_id(bos_token)
        self.eos_id = self._require_id(eos_token)
        self.pad = pad
        self.pad_id = pad_id
        self.default_max_length = default_max_length

        specials = [(tok, self.vocab.id_of(tok)) for tok in (bos_token, eos_token) if tok]
        self.added_tokens = AddedTokenMatcher([*specials, *added_tokens])

    def _require_id(self, token: str | None) -> Token | None:
        """Resolve a configured special token, failing construction if it is missing."""
        if token is None:
            return None
        idx = self.vocab.get(token)
        if idx is None:
            raise ModelLoadError(f"special token {token!r} missing from vocabulary")
        return idx

    # Encoding
    # ---------------------------------------------------------------------------

    def encode(self, text: str, max_length: int | None = None) -> EncodedInput:
        """
        Encode a single text.

        :param text: Raw input text.
        :param max_length: Maximum output length including special tokens;
            defaults to ``default_max_length``.
        :returns: Parallel ``input_ids``/``attention_mask``/``token_type_ids``.
        :raises TokenizationError: If ``max_length`` is negative.
        """
        max_length = self._resolve_max_length(max_length)
        ids, type_ids = self._wrap(self._tokenize(text))
        return self._finalize(ids, type_ids, max_length)

    def encode_pair(
        self, text_a: str, text_b: str, max_length: int | None = None
    ) -> EncodedInput:
        """
        Encode a sentence pair with segment ids 0 (first) and 1 (second).

        Content tokens are truncated longest-first so that special tokens and
        both segments fit in ``max_length`` whenever possible.

        :raises TokenizationError: If ``max_length`` is negative.
        """
        max_length = self._resolve_max_length(max_length)
        ids_a = self._tokenize(text_a)
        ids_b = self._tokenize(text_b)

        available = max(0, max_length - self._num_special_tokens(pair=True))
        len_a, len_b = _truncate_pair_lengths(len(ids_a), len(ids_b), available)

        ids, type_ids = self._wrap(ids_a[:len_a], ids_b[:len_b])
        return self._finalize(ids, type_ids, max_length)

    def encode_batch(
        self,
        texts: list[str],
        max_length: int | None = None,
        num_workers: int | None = None,
        parallel_mode: ParallelMode | ParallelModeName = ParallelMode.AUTO,
    ) -> list[EncodedInput]:
        """
        Encode many texts, optionally across a thread pool.

        Tokenizers are read-only after construction, so one instance serves
        every worker.

        :param texts: Text inputs to encode.
        :param max_length: Applied to every text.
        :param num_workers: Worker count for the pool (default: cpu count).
        :param parallel_mode: ``"off"``, ``"batch"`` or ``"auto"`` (or a :class:`ParallelMode`).
        :returns: Encodings in input order.
        :raises StrategyError: If ``parallel_mode`` names no known mode.
        """
        return map_ordered(
            lambda text: self.encode(text, max_length),
            texts,
            mode=parallel_mode,
            num_workers=num_workers,
        )

    def _tokenize(self, text: str) -> list[Token]:
        """Run added-token matching, then segment each plain span in order."""
        ids: list[Token] = []
        is_first = True
        for span, added_id in self.added_tokens.split(text):
            if added_id is not None:
                ids.append(added_id)
                continue
            ids.extend(self._tokenize_span(span, is_first))
            is_first = False
        return ids

    @abstractmethod
    def _tokenize_span(self, text: str, is_first: bool) -> list[Token]:
        """
        Segment one plain-text span (no added tokens inside) into ids.

        ``is_first`` is true for the first plain span of the input.
        """
        ...

    def _num_special_tokens(self, pair: bool) -> int:
        n_bos = 1 if self.bos_id is not None else 0
        n_eos = 1 if self.eos_id is not None else 0
        return n_bos + n_eos * (2 if pair else 1)

    def _wrap(
        self, ids_a: list[Token], ids_b: list[Token] | None = None
    ) -> tuple[list[Token], list[int]]:
        """Add special tokens: ``[bos] a [eos]`` and, for pairs, ``b [eos]``."""
        ids: list[Token] = []
        if self.bos_id is not None:
            ids.append(self.bos_id)
        ids.extend(ids_a)
        if self.eos_id is not None:
            ids.append(self.eos_id)
        type_ids = [0] * len(ids)

        if ids_b is not None:
            segment = list(ids_b)
            if self.eos_id is not None:
                segment.append(self.eos_id)
            ids.extend(segment)
            type_ids.extend([1] * len(segment))

        return ids, type_ids

    def _finalize(
        self, ids: list[Token], type_ids: list[int], max_length: int
    ) -> EncodedInput:
        """Truncate to ``max_length`` (keeping the closing eos when room) then pad."""
        if len(ids) > max_length:
            if self.eos_id is not None and max_length >= 2 and ids[-1] == self.eos_id:
                ids = ids[: max_length - 1] + [self.eos_id]
                type_ids = type_ids[: max_length - 1] + [type_ids[-1]]
            else:
                # mechanical cut: may drop the closing special token
                ids = ids[:max_length]
                type_ids = type_ids[:max_length]

        n_real = len(ids)
        attention_mask = [1] * n_real
        if self.pad and n_real < max_length:
            n_pad = max_length - n_real
            ids = ids + [self.pad_id] * n_pad
            attention_mask += [0] * n_pad
            type_ids = type_ids + [0] * n_pad

        return EncodedInput(
            input_ids=tuple(ids),
            attention_mask=tuple(attention_mask),
            token_type_ids=tuple(type_ids),
        )

    def _resolve_max_length(self, max_length: int | None) -> int:
        if max_length is None:
            return self.default_max_length
        if max_length < 0:
            raise TokenizationError("max_length must be non-negative", max_length=max_length)
        return max_length

    # Decoding
    # ---------------------------------------------------------------------------

    @overload
    def decode(self, ids: Token, stream: DecodeStream | None = None) -> str: ...

    @overload
    def decode(self, ids: Sequence[Token], stream: DecodeStream | None = None) -> str: ...

    def decode(
        self, ids: Token | Sequence[Token], stream: DecodeStream | None = None
    ) -> str:
        """
        Decode ids back into text, skipping added/special tokens.

        With a single id and no ``stream`` the result equals ``decode([id])``.
        With a ``stream`` each id is decoded incrementally: bytes of an
        incomplete character stay in the stream until a later id completes
        them, so the concatenation of all streamed pieces followed by
        ``stream.flush()`` equals decoding the whole sequence.

        :raises VocabularyError: If any id is not part of the vocabulary.
        """
        if isinstance(ids, int):
            ids = [ids]
        if stream is None:
            return self._decode_ids(list(ids))
        return "".join(self._decode_token(tok, stream) for tok in ids)

    def new_stream(self) -> DecodeStream:
        """Create a decode stream for one token-by-token decoding session."""
        return DecodeStream()

    @abstractmethod
    def _decode_ids(self, ids: list[Token]) -> str:
        """Decode a full id sequence."""
        ...

    @abstractmethod
    def _decode_token(self, tok: Token, stream: DecodeStream) -> str:
        """Decode one id through ``stream``."""
        ...

    # Vocabulary access
    # ---------------------------------------------------------------------------

    def vocab_size(self) -> int:
        """Return the number of tokens in the vocabulary."""
        return len(self.vocab)

    def token_to_id(self, token: str) -> Token | None:
        """Return the id of ``token`` (added tokens included) or ``None``."""
        idx = self.vocab.get(token)
        if idx is None:
            idx = self.added_tokens.tokens.get(token)
        return idx

    def id_to_token(self, tok: Token) -> str:
        """
        Return the token string for ``tok``.

        :raises VocabularyError: If ``tok`` is not a vocabulary id.
        """
        if not self.vocab.has_id(tok):
            for seq, idx in self.added_tokens.tokens.items():
                if idx == tok:
                    return seq
        return self.vocab.token_of(tok)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vocab_size={self.vocab_size()}, "
            f"added_tokens={len(self.added_tokens)})"
        )


def _truncate_pair_lengths(len_a: int, len_b: int, available: int) -> tuple[int, int]:
    """Drop tokens from the longer segment (the first one on ties) until both fit."""
    while len_a + len_b > available:
        if len_b > len_a:
            len_b -= 1
        else:
            len_a -= 1
    return len_a, len_b
