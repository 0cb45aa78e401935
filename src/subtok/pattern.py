"""Pre-tokenization regex patterns for byte-level BPE."""

from enum import Enum

import regex as re

from .errors import PatternError


class TokenPattern(str, Enum):
    """
    Pre-defined regex patterns that split text into words before BPE merges.

    Sources:
    - GPT2 and GPT4: https://github.com/openai/tiktoken/blob/main/tiktoken_ext/openai_public.py
    - CLIP: https://github.com/openai/CLIP/blob/main/clip/simple_tokenizer.py
    - LLAMA3: https://github.com/ggerganov/llama.cpp
    """

    # OpenAI models
    GPT2 = (
        r"'(?:[sdmt]|ll|ve|re)|"
        r" ?\p{L}+|"
        r" ?\p{N}+|"
        r" ?[^\s\p{L}\p{N}]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    GPT4 = (
        r"'(?i:[sdmt]|ll|ve|re)|"
        r"[^\r\n\p{L}\p{N}]?+\p{L}+|"
        r"\p{N}{1,3}|"
        r" ?[^\s\p{L}\p{N}]++[\r\n]*|"
        r"\s*[\r\n]|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    # CLIP text encoder: words carry no leading space, digits split one by one
    CLIP = (
        r"(?i)<\|startoftext\|>|<\|endoftext\|>|"
        r"'s|'t|'re|'ve|'m|'ll|'d|"
        r"[\p{L}]+|"
        r"[\p{N}]|"
        r"[^\s\p{L}\p{N}]+"
    )

    # Meta models
    LLAMA3 = (
        r"(?:'[sS]|'[tT]|'[rR][eE]|'[vV][eE]|'[mM]|'[lL][lL]|'[dD])|"
        r"[^\r\n\p{L}\p{N}]?\p{L}+|"
        r"\p{N}{1,3}|"
        r" ?[^\s\p{L}\p{N}]+[\r\n]*|"
        r"\s*[\r\n]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    @classmethod
    def get(cls, name: str) -> str:
        """Get patterns by name (case-insensitive)."""
        try:
            return cls[name.upper().replace("-", "_")].value
        except KeyError:
            raise PatternError(
                f"Unknown pattern: {name!r}. "
                f"Valid patterns: {', '.join(pat.name for pat in cls)}"
            )


def list_patterns() -> list[str]:
    """Return names of all available built-in pre-tokenization patterns."""
    return [pat.name.lower() for pat in TokenPattern]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile and validate a regex pattern.

    Built-in pattern names (e.g. ``"gpt2"``, ``"clip"``) are resolved first;
    anything else is treated as a raw regex.

    :param pattern: Pattern name or regex string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If the pattern is not valid regex.
    """
    if pattern.upper().replace("-", "_") in TokenPattern.__members__:
        pattern = TokenPattern.get(pattern)
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)
