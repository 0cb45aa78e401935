"""Factory functions for loading tokenizers from vocabulary artifacts on disk."""

import json
import logging
from pathlib import Path
from typing import Any, Final, Literal

from ._decorators import measure_time
from ._models.base import Tokenizer
from ._models.bpe import BPETokenizer
from ._models.sentencepiece_bpe import SentencePieceBPETokenizer
from ._models.unigram import UnigramTokenizer
from ._models.wordpiece import WordPieceTokenizer
from .errors import ModelLoadError
from .vocab import MergeTable, Vocabulary

log = logging.getLogger(__name__)

TokenizerName = Literal["wordpiece", "bpe", "unigram", "sentencepiece_bpe"]

_TOKENIZER_REGISTRY: Final[dict[str, type[Tokenizer]]] = {
    WordPieceTokenizer.TOKENIZER_TYPE: WordPieceTokenizer,
    BPETokenizer.TOKENIZER_TYPE: BPETokenizer,
    UnigramTokenizer.TOKENIZER_TYPE: UnigramTokenizer,
    SentencePieceBPETokenizer.TOKENIZER_TYPE: SentencePieceBPETokenizer,
}

WORDPIECE_VOCAB: Final[str] = "vocab.txt"
BPE_VOCAB: Final[str] = "vocab.json"
BPE_MERGES: Final[str] = "merges.txt"
TOKENIZER_JSON: Final[str] = "tokenizer.json"

CLIP_MAX_LENGTH: Final[int] = 77


def list_tokenizers() -> list[str]:
    """Return the names of the available segmentation algorithms."""
    return list(_TOKENIZER_REGISTRY.keys())


def _read_text(path: str | Path) -> str:
    """Read an artifact as UTF-8, turning I/O failures into ``ModelLoadError``."""
    path = Path(path)
    if not path.exists():
        raise ModelLoadError("artifact filepath does not exist", model_path=str(path))
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ModelLoadError(f"failed to read artifact: {e}", model_path=str(path)) from e


def _with_path(err: ModelLoadError, path: str | Path) -> ModelLoadError:
    """Re-raise a parse error annotated with the artifact path."""
    return ModelLoadError(err.reason, model_path=str(path), line=err.line)


@measure_time
def load_wordpiece(vocab_path: str | Path, **kwargs) -> WordPieceTokenizer:
    """
    Load a WordPiece tokenizer from a ``vocab.txt`` file.

    :param vocab_path: Path to the newline-delimited vocabulary.
    :param kwargs: Forwarded to :class:`WordPieceTokenizer`.
    :raises ModelLoadError: If the file is missing or malformed.

    .. code-block:: python

        tokenizer = load_wordpiece("models/bert/vocab.txt")
        encoded = tokenizer.encode("Hello world!", max_length=128)
    """
    text = _read_text(vocab_path)
    log.info(f"loading wordpiece vocabulary from {vocab_path}")
    try:
        return WordPieceTokenizer.from_vocab_text(text, **kwargs)
    except ModelLoadError as e:
        raise _with_path(e, vocab_path) from e


@measure_time
def load_bpe(
    vocab_path: str | Path, merges_path: str | Path, **kwargs
) -> BPETokenizer:
    """
    Load a byte-level BPE tokenizer from ``vocab.json`` and ``merges.txt``.

    :param kwargs: Forwarded to :class:`BPETokenizer` (pattern, lowercase,
                   end_of_word_marker, bos/eos tokens, padding, ...).
    :raises ModelLoadError: If either file is missing or malformed.
    """
    vocab_text = _read_text(vocab_path)
    merges_text = _read_text(merges_path)
    log.info(f"loading bpe vocabulary from {vocab_path} and merges from {merges_path}")
    try:
        vocab = Vocabulary.from_json(vocab_text)
    except ModelLoadError as e:
        raise _with_path(e, vocab_path) from e
    try:
        merges = MergeTable.from_text(merges_text)
    except ModelLoadError as e:
        raise _with_path(e, merges_path) from e
    return BPETokenizer(vocab, merges, **kwargs)


@measure_time
def load_unigram(tokenizer_json: str | Path, **kwargs) -> UnigramTokenizer:
    """
    Load a Unigram tokenizer from a HuggingFace ``tokenizer.json``.

    :param kwargs: Forwarded to :meth:`UnigramTokenizer.from_json`
                   (``added_tokens``, ``eos_token``, ``default_max_length``).
    :raises ModelLoadError: If the file is missing or malformed.
    """
    text = _read_text(tokenizer_json)
    log.info(f"loading unigram model from {tokenizer_json}")
    try:
        return UnigramTokenizer.from_json(text, **kwargs)
    except ModelLoadError as e:
        raise _with_path(e, tokenizer_json) from e


@measure_time
def load_sentencepiece_bpe(tokenizer_json: str | Path, **kwargs) -> SentencePieceBPETokenizer:
    """
    Load a SentencePiece BPE tokenizer (Llama, Mistral, Gemma) from a
    HuggingFace ``tokenizer.json``.

    :param kwargs: Forwarded to :meth:`SentencePieceBPETokenizer.from_json`
                   (``added_tokens``, ``bos_token``, ``eos_token``, ...).
    :raises ModelLoadError: If the file is missing or malformed.

    .. code-block:: python

        tokenizer = load_sentencepiece_bpe(
            "models/gemma/tokenizer.json",
            added_tokens=["<start_of_turn>", "<end_of_turn>"],
        )
    """
    text = _read_text(tokenizer_json)
    log.info(f"loading sentencepiece bpe model from {tokenizer_json}")
    try:
        return SentencePieceBPETokenizer.from_json(text, **kwargs)
    except ModelLoadError as e:
        raise _with_path(e, tokenizer_json) from e


def clip_tokenizer(vocab_path: str | Path, merges_path: str | Path) -> BPETokenizer:
    """
    Load the CLIP text tokenizer: lowercased, ``</w>`` word ends, start/end
    tokens, padded to 77 positions.

    .. code-block:: python

        tokenizer = clip_tokenizer("clip/vocab.json", "clip/merges.txt")
        tokenizer.encode("a photo of a cat").input_ids[:7]
        # (49406, 320, 1125, 539, 320, 2368, 49407)
    """
    return load_bpe(
        vocab_path,
        merges_path,
        pattern="clip",
        lowercase=True,
        end_of_word_marker="</w>",
        bos_token="<|startoftext|>",
        eos_token="<|endoftext|>",
        pad=True,
        pad_id=0,
        default_max_length=CLIP_MAX_LENGTH,
    )


def _is_byte_level(component: Any) -> bool:
    """Whether a ``tokenizer.json`` pre-tokenizer or decoder (or a sequence of them) is ByteLevel."""
    if not isinstance(component, dict):
        return False
    if component.get("type") == "ByteLevel":
        return True
    nested = component.get("pretokenizers") or component.get("decoders") or []
    return any(_is_byte_level(c) for c in nested)


def _detect_tokenizer_type(directory: Path) -> TokenizerName:
    """Pick the algorithm from which artifact files a model directory holds."""
    tokenizer_json = directory / TOKENIZER_JSON
    if tokenizer_json.exists():
        try:
            root = json.loads(_read_text(tokenizer_json))
        except json.JSONDecodeError as e:
            raise ModelLoadError(
                f"tokenizer.json is not valid JSON: {e.msg}",
                model_path=str(tokenizer_json),
                line=e.lineno,
            ) from e
        if not isinstance(root, dict):
            raise ModelLoadError(
                "tokenizer.json is not a JSON object", model_path=str(tokenizer_json)
            )
        model = root.get("model") or {}
        model_type = model.get("type", "Unigram") if isinstance(model, dict) else None
        if model_type == "Unigram":
            return "unigram"
        # byte-level BPE is loaded from vocab.json + merges.txt instead
        if model_type == "BPE" and not (
            _is_byte_level(root.get("pre_tokenizer")) or _is_byte_level(root.get("decoder"))
        ):
            return "sentencepiece_bpe"
        log.debug(f"tokenizer.json holds a {model_type!r} model, looking for other artifacts")
    if (directory / BPE_VOCAB).exists() and (directory / BPE_MERGES).exists():
        return "bpe"
    if (directory / WORDPIECE_VOCAB).exists():
        return "wordpiece"
    raise ModelLoadError(
        f"no supported tokenizer artifacts (expected {TOKENIZER_JSON}, "
        f"{BPE_VOCAB} + {BPE_MERGES}, or {WORDPIECE_VOCAB})",
        model_path=str(directory),
    )


def from_pretrained(model_dir: str | Path, **kwargs) -> Tokenizer:
    """
    Load a tokenizer from a model directory.

    The algorithm is chosen by the artifacts present: a Unigram or
    SentencePiece BPE ``tokenizer.json``, else ``vocab.json`` + ``merges.txt``
    (byte-level BPE), else ``vocab.txt`` (WordPiece).

    :param model_dir: Directory holding the vocabulary artifacts.
    :param kwargs: Forwarded to the selected loader.
    :return: Constructed tokenizer.
    :raises ModelLoadError: If the directory holds no supported artifacts or
                            the artifacts are malformed.

    .. code-block:: python

        tokenizer = from_pretrained("models/flan-t5-small")
        ids = tokenizer.encode("translate English to German: hello").input_ids
    """
    directory = Path(model_dir)
    if not directory.is_dir():
        raise ModelLoadError("model directory does not exist", model_path=str(directory))

    tok_type = _detect_tokenizer_type(directory)
    log.info(f"detected {tok_type} tokenizer in {directory}")

    match tok_type:
        case "unigram":
            return load_unigram(directory / TOKENIZER_JSON, **kwargs)
        case "sentencepiece_bpe":
            return load_sentencepiece_bpe(directory / TOKENIZER_JSON, **kwargs)
        case "bpe":
            return load_bpe(directory / BPE_VOCAB, directory / BPE_MERGES, **kwargs)
        case "wordpiece":
            return load_wordpiece(directory / WORDPIECE_VOCAB, **kwargs)


__all__ = [
    "TokenizerName",
    "list_tokenizers",
    "load_wordpiece",
    "load_bpe",
    "load_unigram",
    "load_sentencepiece_bpe",
    "clip_tokenizer",
    "from_pretrained",
]
