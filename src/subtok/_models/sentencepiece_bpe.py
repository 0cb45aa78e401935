"""SentencePiece-style BPE tokenizer with byte fallback (Llama, Mistral, Gemma)."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, override

from ..errors import ModelLoadError
from ..types import Token, TokenPair
from ..vocab import MergeTable, Vocabulary
from ._sentencepiece import (
    SentencePieceTokenizer,
    byte_token,
    load_model_section,
    mark_spaces,
    parse_added_tokens,
    resolve_added_tokens,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentencePieceBPEModel:
    """Parsed contents of a SentencePiece BPE ``tokenizer.json``."""

    vocab: Vocabulary
    merges: MergeTable
    added_tokens: tuple[tuple[str, Token], ...]
    unk_token: str | None


def _parse_merge(entry: Any, idx: int) -> TokenPair:
    """A merge is either ``"left right"`` or ``["left", "right"]``."""
    match entry:
        case str():
            left, sep, right = entry.partition(" ")
            if sep and left and right:
                return left, right
        case [str() as left, str() as right] if left and right:
            return left, right
    raise ModelLoadError(f"invalid merge entry at index {idx}: {entry!r}")


def parse_sentencepiece_bpe_json(text: str) -> SentencePieceBPEModel:
    """
    Parse a HuggingFace ``tokenizer.json`` holding a SentencePiece BPE model.

    Expected shape::

        {
          "added_tokens": [{"id": 1, "content": "<s>", "special": true}, ...],
          "model": {
            "type": "BPE",
            "unk_token": "<unk>",
            "vocab": {"<unk>": 0, "<s>": 1, "▁h": 11, ...},
            "merges": ["▁ h", ["l", "l"], ...]
          }
        }

    Merges may be written as space-separated strings (split at the first
    space) or as two-element lists; rank is list position.

    :raises ModelLoadError: If the content is not a well-formed BPE artifact.
    """
    root, model = load_model_section(text, "BPE")

    raw_vocab = model.get("vocab")
    if not isinstance(raw_vocab, dict):
        raise ModelLoadError("tokenizer.json missing 'model.vocab' object")
    vocab = Vocabulary(raw_vocab)

    raw_merges = model.get("merges")
    if not isinstance(raw_merges, list):
        raise ModelLoadError("tokenizer.json missing 'model.merges' list")
    merges = MergeTable.from_pairs(
        _parse_merge(entry, idx) for idx, entry in enumerate(raw_merges)
    )

    added = parse_added_tokens(root, vocab)

    unk_token = model.get("unk_token")
    if unk_token is not None and (not isinstance(unk_token, str) or unk_token not in vocab):
        raise ModelLoadError(f"unk_token {unk_token!r} missing from vocabulary")

    log.debug(
        f"parsed sentencepiece bpe model: {len(vocab)} tokens, {len(merges)} merges, "
        f"{len(added)} added tokens"
    )
    return SentencePieceBPEModel(
        vocab=vocab, merges=merges, added_tokens=added, unk_token=unk_token
    )


class SentencePieceBPETokenizer(SentencePieceTokenizer):
    """
    BPE over characters of ``▁``-marked text, falling back to ``<0xHH>`` bytes.

    Each plain-text span has its spaces replaced by ``▁`` (the first span is
    also prefixed with one) and is split into characters. Adjacent pairs are
    merged by ascending rank, as in :class:`BPETokenizer`, but without any
    pre-tokenization regex or byte-to-unicode mapping. A merged symbol that is
    not in the vocabulary is emitted as the byte-fallback tokens of its UTF-8
    bytes.

    The byte tokens need not be contiguous or complete: a byte without a
    ``<0xHH>`` piece becomes ``unk_token`` when one is configured and is
    dropped otherwise.

    No padding; truncation slices the id array to ``max_length``.

    .. code-block:: python

        tok = SentencePieceBPETokenizer.from_json(tokenizer_json, bos_token="<s>")
        tok.encode("hello world").input_ids  # (1, 15, 20)
    """

    TOKENIZER_TYPE = "sentencepiece_bpe"

    def __init__(
        self,
        vocab: Vocabulary,
        merges: MergeTable,
        *,
        added_tokens: Iterable[tuple[str, Token]] = (),
        unk_token: str | None = None,
        bos_token: str | None = None,
        eos_token: str | None = None,
        default_max_length: int = 8192,
    ) -> None:
        """
        :param vocab: Token -> id vocabulary, byte-fallback pieces included.
        :param merges: Ranked merge rules over ``▁``-marked characters.
        :param added_tokens: ``(content, id)`` pairs matched atomically and skipped on decode.
        :param unk_token: Token for bytes with no ``<0xHH>`` piece, if any.
        :param bos_token: Token prepended to every sequence (``<s>`` for Llama), if any.
        :param eos_token: Token appended after each sequence, if any.
        :raises ModelLoadError: If a configured special token is missing from the vocabulary.
        """
        super().__init__(
            vocab,
            bos_token=bos_token,
            eos_token=eos_token,
            added_tokens=added_tokens,
            default_max_length=default_max_length,
        )
        self.merges = merges
        self.unk_id = self._require_id(unk_token)

        self._byte_ids: dict[int, Token] = {}
        for b in range(256):
            idx = vocab.get(byte_token(b))
            if idx is not None:
                self._byte_ids[b] = idx
        if len(self._byte_ids) < 256:
            log.warning(
                f"vocabulary holds {len(self._byte_ids)} of 256 byte-fallback tokens"
            )

        log.info(
            f"sentencepiece bpe tokenizer ready: {len(vocab)} tokens, "
            f"{len(merges)} merge rules, {len(self.added_tokens)} added tokens"
        )

    @classmethod
    def from_model(
        cls, model: SentencePieceBPEModel, added_tokens: Iterable[str] = (), **kwargs
    ) -> "SentencePieceBPETokenizer":
        """
        Build from a parsed :class:`SentencePieceBPEModel`.

        :param added_tokens: Extra vocabulary strings to match atomically
            (e.g. ``<start_of_turn>``).
        """
        extra = resolve_added_tokens(model.vocab, added_tokens)
        kwargs.setdefault("unk_token", model.unk_token)
        return cls(
            model.vocab,
            model.merges,
            added_tokens=[*model.added_tokens, *extra],
            **kwargs,
        )

    @classmethod
    def from_json(
        cls, text: str, added_tokens: Iterable[str] = (), **kwargs
    ) -> "SentencePieceBPETokenizer":
        """Build from the content of a SentencePiece BPE ``tokenizer.json``."""
        return cls.from_model(parse_sentencepiece_bpe_json(text), added_tokens, **kwargs)

    @override
    def _tokenize_span(self, text: str, is_first: bool) -> list[Token]:
        ids: list[Token] = []
        for symbol in self.merges.apply(list(mark_spaces(text, is_first))):
            idx = self.vocab.get(symbol)
            if idx is None:
                ids.extend(self._fallback_ids(symbol))
            else:
                ids.append(idx)
        return ids

    def _fallback_ids(self, symbol: str) -> list[Token]:
        ids: list[Token] = []
        for b in symbol.encode("utf-8"):
            idx = self._byte_ids.get(b, self.unk_id)
            if idx is None:
                log.debug(f"no byte-fallback token for 0x{b:02X} in {symbol!r}, dropped")
                continue
            ids.append(idx)
        return ids
