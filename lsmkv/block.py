"""Sorted key/value blocks holding multiple versions per key, and their iterators."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .checksum import hash32

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_MAX_FIELD = 0xFFFF
# key length + value length + element-count slot, plus the transaction id
_ENTRY_OVERHEAD = 3 * _U16.size + _U64.size

DEFAULT_BLOCK_SIZE = 4096


def _to_bytes(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _to_str(raw: bytes | bytearray) -> str:
    return bytes(raw).decode("utf-8", "surrogateescape")


@dataclass(frozen=True)
class BlockEntry:
    """One decoded record of a block."""

    key: str
    value: str
    tranc_id: int


class Block:
    """An append-only run of entries sorted by key.

    Entries with the same key are stored next to each other, newest
    transaction first.  Layout of the encoded form:
    entries | offsets (u16 each) | entry count (u16).
    """

    def __init__(self, capacity: int = DEFAULT_BLOCK_SIZE) -> None:
        self.capacity = capacity
        self.data = bytearray()
        self.offsets: list[int] = []

    # ------------------------------------------------------------ encoding
    def encode(self) -> bytes:
        count = len(self.offsets)
        return (
            bytes(self.data)
            + struct.pack(f"<{count}H", *self.offsets)
            + _U16.pack(count)
        )

    @classmethod
    def decode(cls, encoded: bytes | bytearray, with_hash: bool = False) -> "Block":
        """Rebuild a block; with ``with_hash`` the last 4 bytes are a checksum."""
        encoded = bytes(encoded)
        if len(encoded) < _U16.size:
            raise ValueError("Encoded data too small")
        end = len(encoded)
        if with_hash:
            if len(encoded) < _U16.size + _U32.size:
                raise ValueError("Encoded data too small")
            end -= _U32.size
            (stored,) = _U32.unpack_from(encoded, end)
            if stored != hash32(encoded[:end]):
                raise ValueError("Block hash verification failed")

        count_pos = end - _U16.size
        (count,) = _U16.unpack_from(encoded, count_pos)
        offsets_start = count_pos - count * _U16.size
        if offsets_start < 0:
            raise ValueError("Invalid encoded data size")

        block = cls()
        block.offsets = list(struct.unpack_from(f"<{count}H", encoded, offsets_start))
        block.data = bytearray(encoded[:offsets_start])
        return block

    # ------------------------------------------------------------ raw access
    def _raw_key_at(self, offset: int) -> bytes:
        (key_len,) = _U16.unpack_from(self.data, offset)
        start = offset + _U16.size
        return bytes(self.data[start : start + key_len])

    def _value_span(self, offset: int) -> tuple[int, int]:
        (key_len,) = _U16.unpack_from(self.data, offset)
        value_len_pos = offset + _U16.size + key_len
        (value_len,) = _U16.unpack_from(self.data, value_len_pos)
        return value_len_pos + _U16.size, value_len

    def _tranc_id_at_index(self, idx: int) -> int:
        return self.get_tranc_id_at(self.offsets[idx])

    def _same_raw_key(self, idx: int, target: bytes) -> bool:
        return idx < len(self.offsets) and self._raw_key_at(self.offsets[idx]) == target

    # ------------------------------------------------------------ queries
    def get_first_key(self) -> str:
        if not self.data or not self.offsets:
            return ""
        return _to_str(self._raw_key_at(0))

    def get_offset_at(self, idx: int) -> int:
        if not 0 <= idx < len(self.offsets):
            raise IndexError("idx out of offsets range")
        return self.offsets[idx]

    def add_entry(
        self, key: str, value: str, tranc_id: int = 0, force_write: bool = False
    ) -> bool:
        """Append an entry; return False when the block is full."""
        raw_key = _to_bytes(key)
        raw_value = _to_bytes(value)
        if len(raw_key) > _MAX_FIELD or len(raw_value) > _MAX_FIELD:
            raise ValueError("key or value longer than 65535 bytes")
        if (
            not force_write
            and self.offsets
            and self.cur_size() + len(raw_key) + len(raw_value) + _ENTRY_OVERHEAD
            > self.capacity
        ):
            return False

        self.offsets.append(len(self.data))
        self.data += _U16.pack(len(raw_key))
        self.data += raw_key
        self.data += _U16.pack(len(raw_value))
        self.data += raw_value
        self.data += _U64.pack(tranc_id)
        return True

    def get_key_at(self, offset: int) -> str:
        return _to_str(self._raw_key_at(offset))

    def get_value_at(self, offset: int) -> str:
        start, length = self._value_span(offset)
        return _to_str(self.data[start : start + length])

    def get_tranc_id_at(self, offset: int) -> int:
        start, length = self._value_span(offset)
        (tranc_id,) = _U64.unpack_from(self.data, start + length)
        return tranc_id

    def compare_key_at(self, offset: int, target: str) -> int:
        key = self._raw_key_at(offset)
        raw_target = _to_bytes(target)
        return (key > raw_target) - (key < raw_target)

    def is_same_key(self, idx: int, target_key: str) -> bool:
        return self._same_raw_key(idx, _to_bytes(target_key))

    def adjust_idx_by_tranc_id(self, idx: int, tranc_id: int) -> Optional[int]:
        """Move ``idx`` to the newest version of its key visible to ``tranc_id``.

        A ``tranc_id`` of 0 means no transaction: the newest version wins.
        Returns None when no version is visible.
        """
        if idx >= len(self.offsets):
            return None
        target = self._raw_key_at(self.offsets[idx])

        if tranc_id == 0 or self._tranc_id_at_index(idx) <= tranc_id:
            prev = idx
            while prev > 0 and self._same_raw_key(prev - 1, target):
                prev -= 1
                if tranc_id != 0 and self._tranc_id_at_index(prev) > tranc_id:
                    return prev + 1
            return prev

        nxt = idx + 1
        while self._same_raw_key(nxt, target):
            if self._tranc_id_at_index(nxt) <= tranc_id:
                return nxt
            nxt += 1
        return None

    def get_idx_binary(self, key: str, tranc_id: int = 0) -> Optional[int]:
        if not self.offsets:
            return None
        target = _to_bytes(key)
        left, right = 0, len(self.offsets) - 1
        while left <= right:
            mid = (left + right) // 2
            mid_key = self._raw_key_at(self.offsets[mid])
            if mid_key == target:
                return self.adjust_idx_by_tranc_id(mid, tranc_id)
            if mid_key < target:
                left = mid + 1
            else:
                right = mid - 1
        return None

    def get_value_binary(self, key: str, tranc_id: int = 0) -> Optional[str]:
        idx = self.get_idx_binary(key, tranc_id)
        if idx is None:
            return None
        return self.get_value_at(self.offsets[idx])

    def get_monotony_predicate_iters(
        self, tranc_id: int, predicate: Callable[[str], int]
    ) -> Optional[tuple["BlockIterator", "BlockIterator"]]:
        """Return the half-open iterator range of keys where ``predicate`` is 0.

        ``predicate`` returns 0 inside the range, a positive number for keys
        before it and a negative number for keys after it.
        """
        if not self.offsets:
            return None

        left, right = 0, len(self.offsets) - 1
        while left <= right:
            mid = (left + right) // 2
            if predicate(self.get_key_at(self.offsets[mid])) <= 0:
                right = mid - 1
            else:
                left = mid + 1
        first = left

        right = len(self.offsets) - 1
        while left <= right:
            mid = (left + right) // 2
            if predicate(self.get_key_at(self.offsets[mid])) < 0:
                right = mid - 1
            else:
                left = mid + 1
        stop = left

        return BlockIterator(self, first, tranc_id), BlockIterator(self, stop, tranc_id)

    def iters_preffix(
        self, tranc_id: int, preffix: str
    ) -> Optional[tuple["BlockIterator", "BlockIterator"]]:
        raw_prefix = _to_bytes(preffix)

        def predicate(key: str) -> int:
            head = _to_bytes(key)[: len(raw_prefix)]
            return -((head > raw_prefix) - (head < raw_prefix))

        return self.get_monotony_predicate_iters(tranc_id, predicate)

    def get_entry_at(self, offset: int) -> BlockEntry:
        return BlockEntry(
            key=self.get_key_at(offset),
            value=self.get_value_at(offset),
            tranc_id=self.get_tranc_id_at(offset),
        )

    def __len__(self) -> int:
        return len(self.offsets)

    def cur_size(self) -> int:
        return len(self.data) + len(self.offsets) * _U16.size + _U16.size

    def is_empty(self) -> bool:
        return not self.offsets

    def begin(self, tranc_id: int = 0) -> "BlockIterator":
        return BlockIterator(self, 0, tranc_id)

    def end(self) -> "BlockIterator":
        return BlockIterator(self, len(self.offsets), 0)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return self.begin(0)


class BlockIterator:
    """Cursor over a block that yields one visible version per key."""

    def __init__(self, block: Block, index: int = 0, tranc_id: int = 0) -> None:
        self.block = block
        self.index = index
        self.tranc_id = tranc_id
        self._cached: Optional[tuple[str, str]] = None
        self._skip_by_tranc_id()

    @classmethod
    def at_key(cls, block: Block, key: str, tranc_id: int = 0) -> "BlockIterator":
        """Position at the visible version of ``key``, or at the end."""
        idx = block.get_idx_binary(key, tranc_id)
        return cls(block, len(block) if idx is None else idx, tranc_id)

    def _skip_by_tranc_id(self) -> None:
        self._cached = None
        if self.tranc_id == 0:
            return
        while (
            self.index < len(self.block)
            and self.block.get_tranc_id_at(self.block.offsets[self.index]) > self.tranc_id
        ):
            self.index += 1

    def item(self) -> tuple[str, str]:
        if self.index >= len(self.block):
            raise IndexError("Iterator out of range")
        if self._cached is None:
            offset = self.block.offsets[self.index]
            self._cached = (self.block.get_key_at(offset), self.block.get_value_at(offset))
        return self._cached

    def advance(self) -> "BlockIterator":
        size = len(self.block)
        if self.index < size:
            prev_key = self.block._raw_key_at(self.block.offsets[self.index])
            self.index += 1
            while self.block._same_raw_key(self.index, prev_key):
                self.index += 1
            self._skip_by_tranc_id()
        return self

    def is_end(self) -> bool:
        return self.index == len(self.block)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockIterator):
            return NotImplemented
        return self.block is other.block and self.index == other.index

    __hash__ = None  # type: ignore[assignment]

    def __iter__(self) -> "BlockIterator":
        return self

    def __next__(self) -> tuple[str, str]:
        if self.index >= len(self.block):
            raise StopIteration
        current = self.item()
        self.advance()
        return current