"""Per-consumer state for token-by-token decoding."""

import codecs


class DecodeStream:
    """
    Pending UTF-8 bytes carried across single-token ``decode`` calls.

    A byte-fallback or byte-level token may hold only part of a multi-byte
    character. The stream keeps such bytes until the character completes, so
    concatenating every streamed piece yields the same text as decoding the
    whole id sequence at once.

    A stream belongs to exactly one logical decoding session. Create one per
    generation loop with ``Tokenizer.new_stream()``; do not share it across
    threads.
    """

    __slots__ = ("_decoder", "_strip_leading_space", "_started")

    def __init__(self, strip_leading_space: bool = False) -> None:
        """
        :param strip_leading_space: Drop one leading space from the first
            non-empty text emitted (word-start marker of the first word).
        """
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._strip_leading_space = strip_leading_space
        self._started = False

    def feed(self, data: bytes) -> str:
        """Append raw bytes and return whatever text is now complete."""
        return self._emit(self._decoder.decode(data, final=False))

    def flush(self) -> str:
        """
        End the stream, returning any incomplete trailing bytes as U+FFFD.

        The stream can be reused afterwards as if freshly created.
        """
        text = self._emit(self._decoder.decode(b"", final=True))
        self.reset()
        return text

    def reset(self) -> None:
        """Discard pending bytes and start a new session."""
        self._decoder.reset()
        self._started = False

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet emitted as text."""
        buffered, _ = self._decoder.getstate()
        return buffered

    def _emit(self, text: str) -> str:
        if not text:
            return text
        if not self._started:
            self._started = True
            if self._strip_leading_space and text.startswith(" "):
                text = text[1:]
        return text

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(pending={self.pending!r})"
