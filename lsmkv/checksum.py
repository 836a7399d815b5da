"""32-bit checksum used to guard encoded blocks and block metadata."""

from __future__ import annotations

import struct

_MASK64 = (1 << 64) - 1
_MUL = 0xC6A4A7935BD1E995
_SEED = 0xC70F6907
_WORD = struct.Struct("<Q")


def _shift_mix(value: int) -> int:
    return value ^ (value >> 47)


def hash32(data: bytes | bytearray | memoryview) -> int:
    """Return the low 32 bits of a 64-bit multiplicative hash of ``data``."""
    buf = bytes(data)
    length = len(buf)
    digest = (_SEED ^ (length * _MUL)) & _MASK64
    aligned = length & ~7

    for (word,) in _WORD.iter_unpack(buf[:aligned]):
        mixed = (_shift_mix((word * _MUL) & _MASK64) * _MUL) & _MASK64
        digest ^= mixed
        digest = (digest * _MUL) & _MASK64

    tail = buf[aligned:]
    if tail:
        digest ^= int.from_bytes(tail, "little")
        digest = (digest * _MUL) & _MASK64

    digest = (_shift_mix(digest) * _MUL) & _MASK64
    digest = _shift_mix(digest)
    return digest & 0xFFFFFFFF