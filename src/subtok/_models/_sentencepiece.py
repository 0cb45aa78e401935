"""
Conventions shared by SentencePiece-derived models (Unigram and BPE).

Pieces mark word starts with ``▁`` instead of a space, raw bytes are spelled
``<0xHH>`` and both models ship as a HuggingFace ``tokenizer.json``.
"""

import json
import logging
from collections.abc import Iterable
from typing import Any, Final, override

import regex as re

from ..errors import ModelLoadError
from ..stream import DecodeStream
from ..types import Token
from ..vocab import Vocabulary
from .base import Tokenizer

log = logging.getLogger(__name__)

SPACE_MARKER: Final[str] = "▁"
_BYTE_TOKEN = re.compile(r"<0x([0-9A-Fa-f]{2})>")


def byte_token(b: int) -> str:
    """Piece string of the byte-fallback token for byte value ``b``."""
    return f"<0x{b:02X}>"


def mark_spaces(text: str, is_first: bool) -> str:
    """Replace spaces with ``▁``; the first span of an input also gets a leading one."""
    text = text.replace(" ", SPACE_MARKER)
    return SPACE_MARKER + text if is_first else text


def piece_bytes(piece: str) -> bytes:
    """Raw bytes a piece stands for: one byte for ``<0xHH>``, else its text with spaces restored."""
    m = _BYTE_TOKEN.fullmatch(piece)
    if m:
        return bytes([int(m.group(1), 16)])
    return piece.replace(SPACE_MARKER, " ").encode("utf-8")


def load_model_section(text: str, model_type: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Parse ``tokenizer.json`` content and return ``(root, model)``.

    A ``model`` section without a ``type`` is taken to be ``model_type``.

    :raises ModelLoadError: On invalid JSON, a missing model section or another model type.
    """
    try:
        root = json.loads(text)
    except json.JSONDecodeError as e:
        raise ModelLoadError(f"tokenizer.json is not valid JSON: {e.msg}", line=e.lineno) from e

    if not isinstance(root, dict) or not isinstance(root.get("model"), dict):
        raise ModelLoadError("tokenizer.json missing 'model' section")
    model: dict[str, Any] = root["model"]
    found = model.get("type", model_type)
    if found != model_type:
        raise ModelLoadError(f"expected a {model_type} model, got {found!r}")
    return root, model


def parse_added_tokens(root: dict[str, Any], vocab: Vocabulary) -> tuple[tuple[str, Token], ...]:
    """
    Read the ``added_tokens`` list as ``(content, id)`` pairs.

    An entry may use an id outside the vocabulary, but not one held by a
    different piece.

    :raises ModelLoadError: On malformed entries or an id clash.
    """
    added: list[tuple[str, Token]] = []
    for entry in root.get("added_tokens") or []:
        content = entry.get("content") if isinstance(entry, dict) else None
        idx = entry.get("id") if isinstance(entry, dict) else None
        if not isinstance(content, str) or not isinstance(idx, int) or idx < 0:
            raise ModelLoadError(f"invalid added token entry: {entry!r}")
        if vocab.has_id(idx) and vocab.token_of(idx) != content:
            raise ModelLoadError(
                f"added token {content!r} claims id {idx} held by {vocab.token_of(idx)!r}"
            )
        added.append((content, idx))
    return tuple(added)


def resolve_added_tokens(vocab: Vocabulary, added_tokens: Iterable[str]) -> list[tuple[str, Token]]:
    """Look up extra added-token strings given by the caller."""
    extra: list[tuple[str, Token]] = []
    for seq in added_tokens:
        idx = vocab.get(seq)
        if idx is None:
            raise ModelLoadError(f"added token {seq!r} missing from vocabulary")
        extra.append((seq, idx))
    return extra


class SentencePieceTokenizer(Tokenizer):
    """
    Base for tokenizers over ``▁``-marked pieces with ``<0xHH>`` byte tokens.

    Decoding concatenates piece bytes, skips added tokens and drops the
    space contributed by the marker of the first word, both for whole
    sequences and for streams.
    """

    @override
    def _decode_ids(self, ids: list[Token]) -> str:
        text = b"".join(self._token_bytes(tok) for tok in ids).decode("utf-8", errors="replace")
        return text[1:] if text.startswith(" ") else text

    @override
    def _decode_token(self, tok: Token, stream: DecodeStream) -> str:
        return stream.feed(self._token_bytes(tok))

    @override
    def new_stream(self) -> DecodeStream:
        return DecodeStream(strip_leading_space=True)

    def _token_bytes(self, tok: Token) -> bytes:
        """Bytes contributed by one id; added tokens contribute nothing."""
        if self.added_tokens.is_added_id(tok):
            return b""
        return piece_bytes(self.vocab.token_of(tok))
