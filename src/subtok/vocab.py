"""
Immutable vocabulary and merge-table values.

Both are parsed once from artifact content and never mutated afterwards, so a
single instance can back any number of tokenizers.
"""

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from .errors import ModelLoadError, VocabularyError
from .types import MergeRanks, Token, TokenPair

log = logging.getLogger(__name__)

# characters trimmed from artifact lines: ASCII controls and the space
_LINE_TRIM = "".join(chr(c) for c in range(0x21))


def _artifact_lines(text: str) -> list[str]:
    """
    Split artifact content on line feeds only, dropping a trailing carriage
    return per line.

    ``str.splitlines`` also breaks on NEL, the Unicode line and paragraph
    separators and the ASCII file separators, all of which can be tokens.
    """
    return [line.removesuffix("\r") for line in text.split("\n")]


class Vocabulary:
    """
    Bidirectional mapping between token strings and integer ids.

    Ids need not be contiguous (JSON vocabularies may skip ids), but every id
    is non-negative and maps back to exactly one token.
    """

    __slots__ = ("_tok2id", "_id2tok", "_max_token_len")

    def __init__(self, token_to_id: Mapping[str, Token]) -> None:
        """
        Build a vocabulary from a token -> id mapping.

        :param token_to_id: Mapping from token string to id.
        :raises ModelLoadError: On negative, non-integer or duplicate ids.
        """
        id2tok: dict[Token, str] = {}
        for tok, idx in token_to_id.items():
            # bool is an int subclass but never a valid id
            if not isinstance(idx, int) or isinstance(idx, bool) or idx < 0:
                raise ModelLoadError(f"invalid id {idx!r} for token {tok!r}")
            if idx in id2tok:
                raise ModelLoadError(
                    f"duplicate id {idx} for tokens {id2tok[idx]!r} and {tok!r}"
                )
            id2tok[idx] = tok

        self._tok2id: Mapping[str, Token] = MappingProxyType(dict(token_to_id))
        self._id2tok: Mapping[Token, str] = MappingProxyType(id2tok)
        self._max_token_len = max((len(tok) for tok in self._tok2id), default=0)

    @classmethod
    def from_lines(cls, text: str) -> "Vocabulary":
        """
        Parse a newline-delimited token list where the 0-based line number is the id.

        Lines are split on line feeds and trimmed of ASCII spaces and control
        characters only; other whitespace (ideographic space, NEL) is part of
        the token. Blank lines consume an id but define no token.

        :raises ModelLoadError: If a token appears on more than one line.
        """
        tok2id: dict[str, Token] = {}
        for idx, line in enumerate(_artifact_lines(text)):
            tok = line.strip(_LINE_TRIM)
            if not tok:
                continue
            if tok in tok2id:
                raise ModelLoadError(
                    f"duplicate token {tok!r} (first seen on line {tok2id[tok] + 1})",
                    line=idx + 1,
                )
            tok2id[tok] = idx
        log.debug(f"parsed {len(tok2id)} tokens from line-delimited vocabulary")
        return cls(tok2id)

    @classmethod
    def from_json(cls, text: str) -> "Vocabulary":
        """
        Parse a JSON object mapping token strings to ids.

        :raises ModelLoadError: If the content is not a JSON object of ints.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ModelLoadError(f"vocabulary is not valid JSON: {e.msg}", line=e.lineno) from e
        if not isinstance(data, dict):
            raise ModelLoadError("vocabulary JSON must be an object of token -> id")
        log.debug(f"parsed {len(data)} tokens from JSON vocabulary")
        return cls(data)

    @classmethod
    def from_pieces(cls, pieces: Iterable[str]) -> "Vocabulary":
        """Build a vocabulary whose ids are the positions of ``pieces``."""
        tok2id: dict[str, Token] = {}
        for idx, piece in enumerate(pieces):
            if piece in tok2id:
                raise ModelLoadError(f"duplicate piece {piece!r} at index {idx}")
            tok2id[piece] = idx
        return cls(tok2id)

    def get(self, token: str) -> Token | None:
        """Return the id of ``token`` or ``None`` if it is not in the vocabulary."""
        return self._tok2id.get(token)

    def id_of(self, token: str) -> Token:
        """
        Return the id of ``token``.

        :raises VocabularyError: If the token is unknown.
        """
        idx = self._tok2id.get(token)
        if idx is None:
            raise VocabularyError(f"token {token!r} not found in vocabulary")
        return idx

    def token_of(self, idx: Token) -> str:
        """
        Return the token string for ``idx``.

        :raises VocabularyError: If ``idx`` is not a vocabulary id.
        """
        try:
            return self._id2tok[idx]
        except KeyError:
            raise VocabularyError(
                "token not found in vocabulary", invalid_tok=idx
            ) from None

    def has_id(self, idx: Token) -> bool:
        return idx in self._id2tok

    @property
    def max_token_length(self) -> int:
        """Length in characters of the longest token."""
        return self._max_token_len

    def items(self) -> Iterable[tuple[str, Token]]:
        return self._tok2id.items()

    def __contains__(self, token: object) -> bool:
        return token in self._tok2id

    def __len__(self) -> int:
        return len(self._tok2id)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tok2id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)})"


class MergeTable:
    """
    Ordered BPE merge rules: ``(left, right) -> rank``.

    Rank is the position of the rule in training order; lower ranks merge first.
    """

    __slots__ = ("_ranks",)

    def __init__(self, ranks: Mapping[TokenPair, int]) -> None:
        self._ranks: Mapping[TokenPair, int] = MappingProxyType(dict(ranks))

    @classmethod
    def from_text(cls, text: str) -> "MergeTable":
        """
        Parse a ``merges.txt`` file: one ``left right`` rule per line.

        Comment lines (the ``#version`` header) and blank lines are skipped and
        do not consume a rank. A rule seen twice keeps its first (higher) rank.

        :raises ModelLoadError: If a rule line does not hold exactly two symbols.
        """
        ranks: MergeRanks = {}
        rank = 0
        for lineno, line in enumerate(_artifact_lines(text), start=1):
            line = line.strip(_LINE_TRIM)
            if not line or line.startswith("#"):
                continue
            parts = line.split(" ")
            if len(parts) != 2 or not parts[0] or not parts[1]:
                raise ModelLoadError(f"invalid merge rule {line!r}", line=lineno)
            pair = (parts[0], parts[1])
            if pair in ranks:
                log.warning(f"duplicate merge rule {line!r} on line {lineno} ignored")
            else:
                ranks[pair] = rank
            rank += 1
        log.debug(f"parsed {len(ranks)} merge rules")
        return cls(ranks)

    @classmethod
    def from_pairs(cls, pairs: Iterable[TokenPair]) -> "MergeTable":
        """Build a table from pairs given in training order."""
        ranks: MergeRanks = {}
        for rank, pair in enumerate(pairs):
            ranks.setdefault(pair, rank)
        return cls(ranks)

    def rank(self, left: str, right: str) -> int | None:
        """Return the rank of merging ``left`` and ``right``, or ``None``."""
        return self._ranks.get((left, right))

    def apply(self, symbols: list[str]) -> list[str]:
        """
        Merge ``symbols`` until no ranked pair is left.

        Each step picks the adjacent pair with the lowest rank and merges every
        left-to-right occurrence of it.
        """
        # every merge removes at least one symbol, so this terminates
        while len(symbols) > 1:
            best: TokenPair | None = None
            best_rank: int | None = None
            for pair in zip(symbols, symbols[1:]):
                rank = self._ranks.get(pair)
                if rank is not None and (best_rank is None or rank < best_rank):
                    best, best_rank = pair, rank
            if best is None:
                break
            symbols = _merge_pair(symbols, best)
        return symbols


    def __contains__(self, pair: object) -> bool:
        return pair in self._ranks

    def __len__(self) -> int:
        return len(self._ranks)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)})"


def _merge_pair(symbols: list[str], pair: TokenPair) -> list[str]:
    """Replace every left-to-right occurrence of ``pair`` with its concatenation."""
    left, right = pair
    merged: list[str] = []
    i = 0
    n = len(symbols)
    while i < n:
        if i < n - 1 and symbols[i] == left and symbols[i + 1] == right:
            merged.append(left + right)
            i += 2
        else:
            merged.append(symbols[i])
            i += 1
    return merged
