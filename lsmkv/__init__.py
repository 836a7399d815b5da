"""Data blocks, a block cache, block metadata, merge iterators and a Redis-style command layer for an LSM-tree key-value store."""

__version__ = "0.1.0"