"""Merging iterators over versioned key/value records.

Every cursor here moves forward with ``advance()``, shows its current
``(key, value)`` pair through ``item()`` and reports ``is_end()``,
``is_valid()`` and ``get_tranc_id()``.  The cursors are also plain Python
iterators that yield the remaining pairs.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol


class _Cursor(Protocol):
    def item(self) -> tuple[str, str]: ...

    def advance(self) -> object: ...

    def is_end(self) -> bool: ...

    def is_valid(self) -> bool: ...

    def get_tranc_id(self) -> int: ...


@dataclass(eq=False)
class SearchItem:
    """One version of a key, tagged with where it came from.

    ``idx`` orders sources of the same level (smaller is newer) and
    ``level`` orders levels (smaller is newer).  An empty value marks a
    deletion.
    """

    key: str
    value: str
    idx: int = 0
    level: int = 0
    tranc_id: int = 0

    def _rank(self) -> tuple[str, int, int, int]:
        return (self.key, -self.tranc_id, self.level, self.idx)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SearchItem):
            return NotImplemented
        return self._rank() < other._rank()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchItem):
            return NotImplemented
        return self.idx == other.idx and self.key == other.key

    __hash__ = None  # type: ignore[assignment]


class HeapIterator:
    """Yields the newest visible, non-deleted version of each key in order.

    A ``max_tranc_id`` of 0 disables transaction visibility checks.
    """

    def __init__(
        self, items: Iterable[SearchItem] = (), max_tranc_id: int = 0
    ) -> None:
        self._heap: list[SearchItem] = list(items)
        heapq.heapify(self._heap)
        self.max_tranc_id = max_tranc_id
        self._settle()

    def _drop_key(self, key: str) -> None:
        while self._heap and self._heap[0].key == key:
            heapq.heappop(self._heap)

    def _skip_by_tranc_id(self) -> None:
        if self.max_tranc_id == 0:
            return
        while self._heap and self._heap[0].tranc_id > self.max_tranc_id:
            heapq.heappop(self._heap)

    def _top_value_legal(self) -> bool:
        if not self._heap:
            return True
        top = self._heap[0]
        if self.max_tranc_id != 0 and top.tranc_id > self.max_tranc_id:
            return False
        return bool(top.value)

    def _settle(self) -> None:
        while not self._top_value_legal():
            self._skip_by_tranc_id()
            while self._heap and not self._heap[0].value:
                self._drop_key(self._heap[0].key)

    def item(self) -> tuple[str, str]:
        if not self._heap:
            raise IndexError("Iterator out of range")
        top = self._heap[0]
        return top.key, top.value

    def advance(self) -> "HeapIterator":
        if not self._heap:
            return self
        old = heapq.heappop(self._heap)
        self._drop_key(old.key)
        self._settle()
        return self

    def is_end(self) -> bool:
        return not self._heap

    def is_valid(self) -> bool:
        return bool(self._heap)

    def get_tranc_id(self) -> int:
        return self.max_tranc_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeapIterator):
            return NotImplemented
        if self.is_end() and other.is_end():
            return True
        if self.is_end() or other.is_end():
            return False
        return self.item() == other.item()

    __hash__ = None  # type: ignore[assignment]

    def __iter__(self) -> "HeapIterator":
        return self

    def __next__(self) -> tuple[str, str]:
        if self.is_end():
            raise StopIteration
        current = self.item()
        self.advance()
        return current


def _ended(cursor: Optional[_Cursor]) -> bool:
    return cursor is None or cursor.is_end()


class TwoMergeIterator:
    """Merges two sorted cursors; on equal keys the first one wins."""

    def __init__(
        self,
        it_a: Optional[_Cursor] = None,
        it_b: Optional[_Cursor] = None,
        max_tranc_id: int = 0,
    ) -> None:
        self.it_a = it_a
        self.it_b = it_b
        self.max_tranc_id = max_tranc_id
        self._choose_a = False
        self._resync()

    def _resync(self) -> None:
        self._skip_by_tranc_id()
        self._skip_it_b()
        self._choose_a = self._choose_it_a()

    def _choose_it_a(self) -> bool:
        if _ended(self.it_a):
            return False
        if _ended(self.it_b):
            return True
        return self.it_a.item()[0] < self.it_b.item()[0]

    def _skip_it_b(self) -> None:
        if _ended(self.it_a) or _ended(self.it_b):
            return
        if self.it_a.item()[0] == self.it_b.item()[0]:
            self.it_b.advance()

    def _skip_by_tranc_id(self) -> None:
        if self.max_tranc_id == 0:
            return
        for cursor in (self.it_a, self.it_b):
            while not _ended(cursor) and cursor.get_tranc_id() > self.max_tranc_id:
                cursor.advance()

    def item(self) -> tuple[str, str]:
        cursor = self.it_a if self._choose_a else self.it_b
        if _ended(cursor):
            raise IndexError("Iterator out of range")
        return cursor.item()

    def advance(self) -> "TwoMergeIterator":
        cursor = self.it_a if self._choose_a else self.it_b
        if cursor is not None:
            cursor.advance()
        self._resync()
        return self

    def is_end(self) -> bool:
        return _ended(self.it_a) and _ended(self.it_b)

    def is_valid(self) -> bool:
        return any(
            cursor.is_valid() for cursor in (self.it_a, self.it_b) if cursor is not None
        )

    def get_tranc_id(self) -> int:
        return self.max_tranc_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TwoMergeIterator):
            return NotImplemented
        if self.is_end() and other.is_end():
            return True
        if self.is_end() or other.is_end():
            return False
        return (
            self.it_a is other.it_a
            and self.it_b is other.it_b
            and self._choose_a == other._choose_a
        )

    __hash__ = None  # type: ignore[assignment]

    def __iter__(self) -> "TwoMergeIterator":
        return self

    def __next__(self) -> tuple[str, str]:
        if self.is_end():
            raise StopIteration
        current = self.item()
        self.advance()
        return current