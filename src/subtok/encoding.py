"""Encoder output handed to the model runtime."""

from dataclasses import dataclass

from .types import Token


@dataclass(frozen=True, slots=True)
class EncodedInput:
    """
    Three parallel id arrays produced by ``Tokenizer.encode``.

    ``attention_mask`` is 1 for real tokens and 0 for padding;
    ``token_type_ids`` is 0 for the first sequence and 1 for the second.
    """

    input_ids: tuple[Token, ...]
    attention_mask: tuple[int, ...]
    token_type_ids: tuple[int, ...]

    def __post_init__(self) -> None:
        n = len(self.input_ids)
        if len(self.attention_mask) != n or len(self.token_type_ids) != n:
            raise ValueError(
                "input_ids, attention_mask and token_type_ids must have equal length "
                f"(got {n}, {len(self.attention_mask)}, {len(self.token_type_ids)})"
            )

    def __len__(self) -> int:
        return len(self.input_ids)

    def as_dict(self) -> dict[str, list[int]]:
        """Return the arrays keyed by the tensor names transformer models expect."""
        return {
            "input_ids": list(self.input_ids),
            "attention_mask": list(self.attention_mask),
            "token_type_ids": list(self.token_type_ids),
        }
