"""LRU-K cache of decoded blocks keyed by (sst id, block id)."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from .block import Block


@dataclass
class _CacheItem:
    block: Block
    access_count: int = 1


class BlockCache:
    """Blocks seen fewer than ``k`` times are evicted before frequently used ones."""

    def __init__(self, capacity: int, k: int) -> None:
        self.capacity = capacity
        self.k = k
        self._less_k: "OrderedDict[tuple[int, int], _CacheItem]" = OrderedDict()
        self._greater_k: "OrderedDict[tuple[int, int], _CacheItem]" = OrderedDict()
        self._lock = threading.Lock()
        self._total_requests = 0
        self._hit_requests = 0

    def _find(self, key: tuple[int, int]) -> Optional[_CacheItem]:
        item = self._less_k.get(key)
        return item if item is not None else self._greater_k.get(key)

    def _touch(self, key: tuple[int, int], item: _CacheItem) -> None:
        item.access_count += 1
        if item.access_count < self.k:
            self._less_k.move_to_end(key)
        elif key in self._less_k:
            del self._less_k[key]
            self._greater_k[key] = item
        else:
            self._greater_k.move_to_end(key)

    def get(self, sst_id: int, block_id: int) -> Optional[Block]:
        with self._lock:
            self._total_requests += 1
            key = (sst_id, block_id)
            item = self._find(key)
            if item is None:
                return None
            self._hit_requests += 1
            self._touch(key, item)
            return item.block

    def put(self, sst_id: int, block_id: int, block: Block) -> None:
        with self._lock:
            key = (sst_id, block_id)
            item = self._find(key)
            if item is not None:
                item.block = block
                self._touch(key, item)
                return

            if len(self._less_k) + len(self._greater_k) >= self.capacity:
                if self._less_k:
                    self._less_k.popitem(last=False)
                elif self._greater_k:
                    self._greater_k.popitem(last=False)

            self._less_k[key] = _CacheItem(block)

    def hit_rate(self) -> float:
        with self._lock:
            if self._total_requests == 0:
                return 0.0
            return self._hit_requests / self._total_requests