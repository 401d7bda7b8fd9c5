"""Stable string hashing shared by classification and image selection."""
from __future__ import annotations

_INT32_MASK = 0xFFFFFFFF


def utf16_code_units(text: str) -> list[int]:
    """Split ``text`` into UTF-16 code units; astral characters yield a surrogate pair."""

    data = text.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(data[offset : offset + 2], "little") for offset in range(0, len(data), 2)]


def rolling_hash(text: str) -> int:
    """Return the signed 32-bit ``h * 31 + code`` hash of ``text``.

    The value wraps exactly like 32-bit integer arithmetic and is computed
    over UTF-16 code units, so hashes of cached vehicles stay identical
    between releases.
    """

    value = 0
    for unit in utf16_code_units(text):
        value = (value * 31 + unit) & _INT32_MASK
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def bucket(text: str, size: int) -> int:
    """Map ``text`` onto ``range(size)``."""

    return abs(rolling_hash(text)) % size
