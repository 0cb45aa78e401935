"""Atomic matching of added/special tokens ahead of segmentation."""

import logging
from collections.abc import Iterable

import regex as re

from .errors import SpecialTokenError
from .types import Token

log = logging.getLogger(__name__)


class AddedTokenMatcher:
    """
    Splits raw text into added-token spans and plain-text spans.

    Added tokens are literal strings with a reserved id. They are matched by
    literal substring scan, longest first, so an added token that contains
    another added token wins where both start at the same position.
    """

    __slots__ = ("_tok2id", "_ids", "_pat")

    def __init__(self, tokens: Iterable[tuple[str, Token]] = ()) -> None:
        """
        :param tokens: ``(content, id)`` pairs; repeats of an identical pair are allowed.
        :raises SpecialTokenError: If one string is given two different ids or is empty.
        """
        tok2id: dict[str, Token] = {}
        conflicts: set[str] = set()
        for seq, tok in tokens:
            if not seq:
                raise SpecialTokenError("added token must be a non-empty string")
            if seq in tok2id and tok2id[seq] != tok:
                conflicts.add(seq)
            tok2id.setdefault(seq, tok)
        if conflicts:
            raise SpecialTokenError(
                "added token mapped to more than one id", found_tokens=conflicts
            )

        self._tok2id = tok2id
        self._ids = frozenset(tok2id.values())
        self._pat: re.Pattern[str] | None = None
        if tok2id:
            # escape regex metachars like "|" in "<|endoftext|>"; longest first so
            # leftmost-first alternation yields the longest literal at each position.
            # the capturing group makes split() keep the matched tokens
            alternation = "|".join(
                re.escape(seq) for seq in sorted(tok2id, key=len, reverse=True)
            )
            self._pat = re.compile(f"({alternation})")
        log.debug(f"added-token matcher built with {len(tok2id)} tokens")

    def split(self, text: str) -> list[tuple[str, Token | None]]:
        """
        Split ``text`` into ordered spans.

        Each span is ``(content, id)`` for an added token or ``(content, None)``
        for plain text. Empty plain spans are dropped.
        """
        if self._pat is None:
            return [(text, None)] if text else []

        spans: list[tuple[str, Token | None]] = []
        # re.split alternates plain, matched, plain, ... because of the capture group
        for i, chunk in enumerate(self._pat.split(text)):
            if i % 2 == 1:
                spans.append((chunk, self._tok2id[chunk]))
            elif chunk:
                spans.append((chunk, None))
        return spans

    def is_added_id(self, tok: Token) -> bool:
        return tok in self._ids

    @property
    def tokens(self) -> dict[str, Token]:
        """Copy of the ``content -> id`` mapping."""
        return dict(self._tok2id)

    def __contains__(self, seq: object) -> bool:
        return seq in self._tok2id

    def __len__(self) -> int:
        return len(self._tok2id)
