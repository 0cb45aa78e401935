"""
GPT-2 byte-to-unicode remapping.

Every byte value gets a printable unicode representative so that BPE merges
operate on visible characters: printable Latin-1 bytes map to themselves and
the remaining 68 bytes (control chars, space, ...) map to code points 256+.
"""

from typing import Final


def _build_byte_to_unicode() -> dict[int, str]:
    printable = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("¡"), ord("¬") + 1))
        + list(range(ord("®"), ord("ÿ") + 1))
    )
    table = {b: chr(b) for b in printable}
    n = 0
    for b in range(256):
        if b not in table:
            table[b] = chr(256 + n)
            n += 1
    return table


BYTE_TO_UNICODE: Final[dict[int, str]] = _build_byte_to_unicode()
UNICODE_TO_BYTE: Final[dict[str, int]] = {c: b for b, c in BYTE_TO_UNICODE.items()}


def byte_encode(text: str) -> str:
    """Map the UTF-8 bytes of ``text`` to their visible representatives."""
    return "".join(BYTE_TO_UNICODE[b] for b in text.encode("utf-8"))


def byte_decode(symbols: str) -> bytes:
    """
    Reverse :func:`byte_encode`.

    Characters outside the table are passed through as their own UTF-8 bytes.
    """
    out = bytearray()
    for c in symbols:
        b = UNICODE_TO_BYTE.get(c)
        if b is None:
            out += c.encode("utf-8")
        else:
            out.append(b)
    return bytes(out)
