"""Favicon hashing: MurmurHash3 over line-wrapped base64."""

from __future__ import annotations

import base64
import struct

_MASK = 0xFFFFFFFF
_C1 = 0xCC9E2D51
_C2 = 0x1B873593
_LINE = 76


def _rotl(value: int, count: int) -> int:
    return ((value << count) | (value >> (32 - count))) & _MASK


def _scramble(k: int) -> int:
    k = (k * _C1) & _MASK
    k = _rotl(k, 15)
    return (k * _C2) & _MASK


def mmh3_hash32(data: bytes | str) -> str:
    """MurmurHash3 x86 32-bit with seed 0, rendered as a signed decimal."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    length = len(data)
    body = length - length % 4
    h = 0
    for (k,) in struct.iter_unpack("<I", data[:body]):
        h ^= _scramble(k)
        h = _rotl(h, 13)
        h = (h * 5 + 0xE6546B64) & _MASK

    tail = data[body:]
    if tail:
        k = 0
        for shift, byte in enumerate(tail):
            k |= byte << (8 * shift)
        h ^= _scramble(k)

    h ^= length
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _MASK
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _MASK
    h ^= h >> 16
    if h >= 1 << 31:
        h -= 1 << 32
    return str(h)


def stand_base64(data: bytes) -> bytes:
    """Base64-encode with a newline after every 76 characters and at the end."""
    encoded = base64.b64encode(data)
    lines = [encoded[i : i + _LINE] for i in range(0, len(encoded), _LINE)]
    wrapped = b"".join(line + b"\n" if len(line) == _LINE else line for line in lines)
    return wrapped + b"\n"