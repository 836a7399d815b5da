"""Per-block index entries of a table file and their checksummed encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable

from .checksum import hash32

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


def _to_bytes(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _to_str(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _read_key(data: bytes, pos: int) -> tuple[str, int]:
    if pos + _U16.size > len(data):
        raise ValueError("Metadata truncated")
    (length,) = _U16.unpack_from(data, pos)
    pos += _U16.size
    if pos + length > len(data):
        raise ValueError("Metadata truncated")
    return _to_str(data[pos : pos + length]), pos + length


@dataclass
class BlockMeta:
    """Location and key range of one block."""

    offset: int = 0
    first_key: str = ""
    last_key: str = ""

    @staticmethod
    def encode_meta_to_slice(meta_entries: Iterable["BlockMeta"]) -> bytes:
        """Layout: count (u32) | entries | checksum of entries (u32)."""
        entries = list(meta_entries)
        body = bytearray()
        for meta in entries:
            if not 0 <= meta.offset <= 0xFFFFFFFF:
                raise ValueError("block offset does not fit in 32 bits")
            first = _to_bytes(meta.first_key)
            last = _to_bytes(meta.last_key)
            if len(first) > 0xFFFF or len(last) > 0xFFFF:
                raise ValueError("key longer than 65535 bytes")
            body += _U32.pack(meta.offset)
            body += _U16.pack(len(first))
            body += first
            body += _U16.pack(len(last))
            body += last
        return _U32.pack(len(entries)) + bytes(body) + _U32.pack(hash32(body))

    @staticmethod
    def decode_meta_from_slice(metadata: bytes | bytearray) -> list["BlockMeta"]:
        data = bytes(metadata)
        if len(data) < 2 * _U32.size:
            raise ValueError("Invalid metadata size")

        (count,) = _U32.unpack_from(data, 0)
        pos = _U32.size
        entries = []
        for _ in range(count):
            if pos + _U32.size > len(data):
                raise ValueError("Metadata truncated")
            (offset,) = _U32.unpack_from(data, pos)
            pos += _U32.size
            first_key, pos = _read_key(data, pos)
            last_key, pos = _read_key(data, pos)
            entries.append(BlockMeta(offset, first_key, last_key))

        if pos + _U32.size > len(data):
            raise ValueError("Metadata truncated")
        (stored,) = _U32.unpack_from(data, pos)
        if stored != hash32(data[_U32.size : pos]):
            raise ValueError("Metadata hash mismatch")
        return entries