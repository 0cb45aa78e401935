"""Custom exception hierarchy for subtok tokenization errors."""

import regex as re

from .types import Token


class SubtokError(Exception):
    """Base exception for all subtok errors."""


class SpecialTokenError(SubtokError):
    """Raised when added/special token configuration is inconsistent."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class TokenizationError(SubtokError):
    """Raised when an encode call receives out-of-contract arguments."""

    def __init__(
        self,
        message: str,
        *,
        max_length: int | None = None,
    ) -> None:
        extra = ""
        if max_length is not None:
            extra = f" (max length: {max_length})"
        super().__init__(message + extra)
        self.max_length = max_length


class VocabularyError(SubtokError):
    """Raised when vocabulary lookups fail."""

    def __init__(
        self,
        message: str,
        *,
        vocab_size: int | None = None,
        invalid_tok: Token | None = None,
    ) -> None:
        """Initialize with optional token and vocab_size that get appended to the message."""
        extra = " "
        if vocab_size is not None:
            extra += f"(vocab size: {vocab_size}) "
        # decoding: token not in model vocab
        if invalid_tok is not None:
            extra += f"(invalid token: {invalid_tok}) "
        super().__init__(message + extra.rstrip())
        self.vocab_size = vocab_size
        self.invalid_tok = invalid_tok


class ModelLoadError(SubtokError):
    """Raised when a vocabulary artifact is malformed or cannot be read."""

    def __init__(
        self,
        message: str,
        *,
        model_path: str | None = None,
        line: int | None = None,
    ) -> None:
        extra = " "
        if model_path:
            extra += f"(path: {model_path}) "
        if line is not None:
            extra += f"(line: {line}) "
        super().__init__(message + extra.rstrip())
        self.model_path = model_path
        self.reason = message
        self.line = line


class PatternError(SubtokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra.rstrip())
        self.pattern = pattern
        self.regex_err = regex_err


class StrategyError(SubtokError):
    """Raised when an unknown named mode is requested."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available_strats: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available_strats}) (got {invalid_name}) "
        super().__init__(message + extra.rstrip())
        self.invalid_name = invalid_name
        self.available_strats = available_strats
