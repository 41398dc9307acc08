"""Radix-32 fingerprints used as tile ETags.

A fingerprint is a 64-bit value plus one flag bit, written as 13 characters
from ``0123456789abcdefghijklmnopqrstuv``. The first character holds the top
4 bits of the value and, in its lowest bit, the flag; the other 12 characters
hold the remaining 60 bits, five at a time, most significant first.

The flag conventionally marks the ETag of the empty (missing) tile.
"""

from __future__ import annotations

import numpy as np

from rastertile.config import FINGERPRINT_MIN_SIZE, STRICT_ETAGS

from .errors import ParseError

DIGITS = "0123456789abcdefghijklmnopqrstuv"
WIDTH = 13

_MASK64 = (1 << 64) - 1


def _digit(ch: str) -> int:
    """Value of a radix-32 character, or -1 if it is not one (ASCII only)."""
    c = ord(ch)
    if 48 <= c <= 57:  # 0-9
        return c - 48
    if 65 <= c < 65 + 22:  # A-V
        return c - 65 + 10
    if 97 <= c < 97 + 22:  # a-v
        return c - 97 + 10
    return -1


def encode(value: int, flag: bool = False) -> str:
    """Encode a 64-bit unsigned value and a flag as a 13 character string.

    Raises:
        ValueError: If value does not fit in 64 unsigned bits
    """
    if not 0 <= value <= _MASK64:
        raise ValueError(f"Fingerprint value out of range: {value}")
    chars = [DIGITS[((value >> 60) & 0xF) << 1 | (1 if flag else 0)]]
    for i in range(1, WIDTH):
        chars.append(DIGITS[(value >> (60 - i * 5)) & 0x1F])
    return "".join(chars)


def decode(text: str, strict: bool | None = None) -> tuple[int, bool]:
    """Decode a fingerprint string into ``(value, flag)``.

    Leading double quotes are skipped, so a raw ``ETag`` header value can be
    passed directly. Missing trailing digits count as zeros.

    In lenient mode (the default unless ``RASTERTILE_STRICT_ETAGS`` is set)
    decoding stops at the first invalid character and the rest of the value
    is zero; an invalid first character decodes to ``(0, False)``.

    Args:
        text: Fingerprint, optionally quoted
        strict: Raise on malformed input; None uses the configured default

    Raises:
        ParseError: In strict mode, on an invalid character or length
    """
    if strict is None:
        strict = STRICT_ETAGS

    body = text.lstrip('"')
    if strict:
        digits = body.rstrip('"')
        if len(digits) != WIDTH or any(_digit(ch) < 0 for ch in digits):
            raise ParseError(f"Malformed fingerprint: {text!r}")

    if not body or _digit(body[0]) < 0:
        return 0, False

    first = _digit(body[0])
    flag = bool(first & 1)
    value = first >> 1
    count = 1
    for ch in body[1:WIDTH]:
        v = _digit(ch)
        if v < 0:
            break
        value = (value << 5) | v
        count += 1

    if count < WIDTH:
        value <<= 5 * (WIDTH - count)
    return value & _MASK64, flag


def synthesize(data: bytes | bytearray | memoryview) -> int | None:
    """Cheap content signature of a payload, not a hash of all of it.

    XOR of three little-endian 64-bit words: word 4 from the start and words
    ``n // 8 - 4`` and ``n // 8 - 6``, where n is the payload length.

    Returns:
        The 64-bit signature, or None for payloads of 128 bytes or less
    """
    size = len(data)
    if size <= FINGERPRINT_MIN_SIZE:
        return None
    nwords = size // 8
    words = np.frombuffer(data, dtype="<u8", count=nwords)
    value = words[4] ^ words[nwords - 4] ^ words[nwords - 6]
    return int(value)


def quote(fingerprint: str) -> str:
    """Render a fingerprint as a quoted HTTP entity tag."""
    return f'"{fingerprint}"'


def etag_matches(if_none_match: str | None, fingerprint: str) -> bool:
    """True if an ``If-None-Match`` header mentions the fingerprint."""
    return bool(if_none_match) and fingerprint in if_none_match
