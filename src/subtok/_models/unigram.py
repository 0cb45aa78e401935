"""SentencePiece-style Unigram tokenizer with Viterbi segmentation (T5, Flan-T5)."""

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Final, override

from ..errors import ModelLoadError
from ..types import Score, Token
from ..vocab import Vocabulary
from ._sentencepiece import (
    SentencePieceTokenizer,
    byte_token,
    load_model_section,
    mark_spaces,
    parse_added_tokens,
    resolve_added_tokens,
)

log = logging.getLogger(__name__)

# score of a lattice edge covering a character no piece can reach, below min score
UNK_PENALTY: Final[float] = 10.0


@dataclass(frozen=True)
class UnigramModel:
    """Parsed contents of a Unigram ``tokenizer.json``."""

    vocab: Vocabulary
    scores: tuple[Score, ...]
    added_tokens: tuple[tuple[str, Token], ...]
    unk_id: Token | None
    byte_fallback_offset: Token | None


def parse_unigram_json(text: str) -> UnigramModel:
    """
    Parse a HuggingFace ``tokenizer.json`` holding a Unigram model.

    Expected shape::

        {
          "added_tokens": [{"id": 0, "content": "<pad>", "special": true}, ...],
          "model": {
            "type": "Unigram",
            "unk_id": 2,
            "vocab": [["<pad>", 0.0], ["▁hello", -5.0], ...],
            "byte_fallback_offset": 41
          }
        }

    ``byte_fallback_offset`` is optional; without it the block is located by
    the ``<0x00>`` piece.

    :raises ModelLoadError: If the content is not a well-formed Unigram artifact.
    """
    root, model = load_model_section(text, "Unigram")

    raw_vocab = model.get("vocab")
    if not isinstance(raw_vocab, list):
        raise ModelLoadError("tokenizer.json missing 'model.vocab' list")

    pieces: list[str] = []
    scores: list[Score] = []
    for idx, entry in enumerate(raw_vocab):
        if (
            not isinstance(entry, (list, tuple))
            or len(entry) != 2
            or not isinstance(entry[0], str)
            or not isinstance(entry[1], (int, float))
            or isinstance(entry[1], bool)
        ):
            raise ModelLoadError(f"invalid vocab entry at index {idx}: {entry!r}")
        pieces.append(entry[0])
        scores.append(float(entry[1]))
    vocab = Vocabulary.from_pieces(pieces)

    added = parse_added_tokens(root, vocab)

    unk_id = model.get("unk_id")
    if unk_id is not None and (not isinstance(unk_id, int) or not vocab.has_id(unk_id)):
        raise ModelLoadError(f"unk_id {unk_id!r} outside vocabulary")

    offset = model.get("byte_fallback_offset")
    if offset is not None and not isinstance(offset, int):
        raise ModelLoadError(f"byte_fallback_offset must be an integer, got {offset!r}")

    log.debug(f"parsed unigram model: {len(pieces)} pieces, {len(added)} added tokens")
    return UnigramModel(
        vocab=vocab,
        scores=tuple(scores),
        added_tokens=added,
        unk_id=unk_id,
        byte_fallback_offset=offset,
    )


class UnigramTokenizer(SentencePieceTokenizer):
    """
    Unigram tokenizer choosing the maximum-score segmentation by Viterbi search.

    Every vocabulary piece carries a log-probability score. For each plain-text
    span (spaces replaced by ``▁``, the first span also prefixed with it)
    a forward pass records, for every end position, the best-scoring piece
    ending there; backtracking yields the globally optimal path. Scores are
    summed; on exact ties the first candidate found while scanning start
    positions in increasing order is kept, i.e. the longer piece wins.

    Characters no piece can reach are emitted as byte-fallback tokens
    ``<0xHH>`` (id ``byte_fallback_offset + byte``), one per UTF-8 byte.

    No padding; truncation slices the id array to ``max_length``.
    """

    TOKENIZER_TYPE = "unigram"

    def __init__(
        self,
        vocab: Vocabulary,
        scores: Sequence[Score],
        *,
        added_tokens: Iterable[tuple[str, Token]] = (),
        unk_id: Token | None = None,
        byte_fallback_offset: Token | None = None,
        eos_token: str | None = None,
        default_max_length: int = 8192,
    ) -> None:
        """
        :param vocab: Pieces with ids equal to their position.
        :param scores: Log-probability per piece, indexed by id.
        :param added_tokens: ``(content, id)`` pairs matched atomically and skipped on decode.
        :param unk_id: Id used for unreachable characters when there is no byte-fallback block.
        :param byte_fallback_offset: Id of ``<0x00>``; located automatically when omitted.
        :param eos_token: Token appended after each sequence (``</s>`` for T5), if any.
        :raises ModelLoadError: On score/vocab size mismatch, a broken byte-fallback
            block, or when unreachable characters would have no representation.
        """
        if len(scores) != len(vocab):
            raise ModelLoadError(
                f"score count {len(scores)} does not match vocabulary size {len(vocab)}"
            )

        super().__init__(
            vocab,
            eos_token=eos_token,
            added_tokens=added_tokens,
            default_max_length=default_max_length,
        )
        self.scores: tuple[Score, ...] = tuple(scores)
        self.unk_id = unk_id
        self.byte_fallback_offset = self._locate_byte_fallback(byte_fallback_offset)
        if self.byte_fallback_offset is None and unk_id is None:
            raise ModelLoadError("vocabulary has neither a byte-fallback block nor an unk token")

        # pieces the lattice may use: byte-fallback and added tokens never match text
        excluded = set(self.added_tokens.tokens.values())
        if self.byte_fallback_offset is not None:
            excluded.update(range(self.byte_fallback_offset, self.byte_fallback_offset + 256))
        if unk_id is not None:
            excluded.add(unk_id)
        self._pieces: dict[str, Token] = {
            piece: idx for piece, idx in vocab.items() if idx not in excluded
        }
        self._max_piece_len = max((len(p) for p in self._pieces), default=0)
        self._unk_score = min(self.scores, default=0.0) - UNK_PENALTY

        log.info(
            f"unigram tokenizer ready: {len(vocab)} pieces, "
            f"{len(self.added_tokens)} added tokens, "
            f"byte fallback at {self.byte_fallback_offset}"
        )

    @classmethod
    def from_model(
        cls, model: UnigramModel, added_tokens: Iterable[str] = (), **kwargs
    ) -> "UnigramTokenizer":
        """
        Build from a parsed :class:`UnigramModel`.

        :param added_tokens: Extra vocabulary strings to match atomically
            (e.g. chat-turn markers not flagged in the artifact).
        """
        extra = resolve_added_tokens(model.vocab, added_tokens)
        return cls(
            model.vocab,
            model.scores,
            added_tokens=[*model.added_tokens, *extra],
            unk_id=model.unk_id,
            byte_fallback_offset=model.byte_fallback_offset,
            **kwargs,
        )

    @classmethod
    def from_json(
        cls, text: str, added_tokens: Iterable[str] = (), **kwargs
    ) -> "UnigramTokenizer":
        """Build from the content of a Unigram ``tokenizer.json``."""
        return cls.from_model(parse_unigram_json(text), added_tokens, **kwargs)

    def _locate_byte_fallback(self, offset: Token | None) -> Token | None:
        """Validate (or find) the 256 contiguous ``<0xHH>`` ids."""
        if offset is None:
            offset = self.vocab.get(byte_token(0))
            if offset is None:
                return None
        for b in range(256):
            idx = offset + b
            if not self.vocab.has_id(idx) or self.vocab.token_of(idx) != byte_token(b):
                raise ModelLoadError(
                    f"byte-fallback block broken at id {idx}: expected {byte_token(b)!r}"
                )
        return offset

    # Encoding
    # ---------------------------------------------------------------------------

    @override
    def _tokenize_span(self, text: str, is_first: bool) -> list[Token]:
        return self._viterbi(mark_spaces(text, is_first))

    def _viterbi(self, text: str) -> list[Token]:
        """Return the ids of the maximum-score segmentation of ``text``."""
        n = len(text)
        if n == 0:
            return []

        best_score = [-math.inf] * (n + 1)
        best_score[0] = 0.0
        # start of the winning edge ending at each position
        best_prev = [-1] * (n + 1)
        # id of the winning edge; None marks a byte-fallback edge
        best_tok: list[Token | None] = [None] * (n + 1)

        for end in range(1, n + 1):
            for start in range(max(0, end - self._max_piece_len), end):
                if best_score[start] == -math.inf:
                    continue
                idx = self._pieces.get(text[start:end])
                if idx is None:
                    continue
                candidate = best_score[start] + self.scores[idx]
                # strict: the first maximum found (the longest piece) is kept
                if candidate > best_score[end]:
                    best_score[end] = candidate
                    best_prev[end] = start
                    best_tok[end] = idx

            if best_score[end] == -math.inf:
                # no piece ends here: cover the single character by fallback
                best_score[end] = best_score[end - 1] + self._unk_score
                best_prev[end] = end - 1
                best_tok[end] = None

        path: list[tuple[int, int, Token | None]] = []
        pos = n
        while pos > 0:
            path.append((best_prev[pos], pos, best_tok[pos]))
            pos = best_prev[pos]
        path.reverse()

        ids: list[Token] = []
        for start, end, idx in path:
            if idx is not None:
                ids.append(idx)
            else:
                ids.extend(self._fallback_ids(text[start:end]))
        return ids

    def _fallback_ids(self, chunk: str) -> list[Token]:
        if self.byte_fallback_offset is None:
            # construction guarantees an unk id when there is no byte block
            return [self.unk_id]
        return [self.byte_fallback_offset + b for b in chunk.encode("utf-8")]

