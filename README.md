# lsmkv

Storage pieces for a log-structured merge-tree key-value store, and a
Redis-style command layer that answers RESP requests through an engine you
supply.

The package has no third-party dependencies.

## Modules

- **`lsmkv.block`**: `Block`, a sorted data block. Every entry holds a key,
  a value and a transaction id. Several versions of the same key sit next to
  each other, newest transaction first. `BlockIterator` walks a block and
  shows one version per key, skipping versions a given transaction may not
  see. `BlockEntry` is one decoded record.
- **`lsmkv.block_cache`**: `BlockCache`, a thread-safe LRU-K cache of blocks
  keyed by `(sst_id, block_id)`.
- **`lsmkv.blockmeta`**: `BlockMeta`, a per-block index entry (offset, first
  key, last key), with a checksummed binary encoding.
- **`lsmkv.checksum`**: `hash32`, the 32-bit checksum used by the block and
  metadata encodings.
- **`lsmkv.iterators`**: `SearchItem`, `HeapIterator` and
  `TwoMergeIterator`. These merge sorted sources into one ordered view, with
  the newest version of each key first and deleted keys left out. A deleted
  key is one whose value is empty.
- **`lsmkv.handler`**: `Ops`, `string_to_ops` and one `*_handler` function
  for each supported command. The commands cover strings, hashes, lists,
  sorted sets and sets. Each handler checks the argument count and passes
  the call to the engine.
- **`lsmkv.server`**: `parse_request`, `ProtocolError` and `RedisServer`.
  `RedisServer` decodes RESP requests, sends each command to its handler,
  and can serve TCP clients.

## Blocks

```python
from lsmkv.block import Block

block = Block(4096)
block.add_entry("apple", "red", 1, False)
block.add_entry("orange", "orange2", 2, False)
block.add_entry("orange", "orange1", 1, False)

encoded = block.encode()
decoded = Block.decode(encoded, False)

decoded.get_value_binary("orange", 0)   # "orange2": newest version
decoded.get_value_binary("orange", 1)   # "orange1": as seen by transaction 1
decoded.get_value_binary("grape", 0)    # None

for key, value in decoded:
    print(key, value)                   # apple red, then orange orange2
```

A transaction id of `0` turns visibility checks off, so the newest version
of every key is returned.

Entries must be added in key order, and versions of one key newest first.
`add_entry` returns `False` when the entry would push a non-empty block past
its capacity, unless `force_write` is true. Keys and values longer than
65535 bytes raise `ValueError`. `Block.decode(data, True)` expects a 4-byte
checksum at the end of the data and raises `ValueError` if the checksum does
not match. It also raises `ValueError` when the data is too short.

`get_monotony_predicate_iters(tranc_id, predicate)` takes a predicate that
returns `0` inside the wanted range, a positive number for keys before it
and a negative number for keys after it. It returns a `(begin, end)` pair of
`BlockIterator`s, or `None` for an empty block. `iters_preffix(tranc_id,
prefix)` does the same for a key prefix. Move an iterator with `advance()`,
read it with `item()`, and compare positions with `==`.

## Block cache

```python
from lsmkv.block import Block
from lsmkv.block_cache import BlockCache

cache = BlockCache(3, 2)          # capacity 3, K = 2
cache.put(1, 1, Block(4096))
cache.get(1, 1)                   # the cached block
cache.get(1, 9)                   # None
cache.hit_rate()                  # 0.5
```

When the cache is full, a block that has been used fewer than K times is
evicted first, the least recently used of those. Only when every block has
reached K uses is the least recently used of those evicted.

## Block metadata

```python
from lsmkv.blockmeta import BlockMeta

metas = [BlockMeta(0, "a100", "a199"), BlockMeta(100, "a200", "a299")]
data = BlockMeta.encode_meta_to_slice(metas)      # bytes
BlockMeta.decode_meta_from_slice(data)            # the same two entries
```

Decoding raises `ValueError` when the data is too short, is truncated, or
fails its checksum.

## Merge iterators

```python
from lsmkv.iterators import HeapIterator, SearchItem

items = [
    SearchItem("a", "old", idx=1),
    SearchItem("a", "new", idx=0),
    SearchItem("b", ""),            # deletion marker
    SearchItem("c", "3"),
]
list(HeapIterator(items))           # [("a", "new"), ("c", "3")]
```

Versions of a key are ordered by higher `tranc_id` first, then lower
`level`, then lower `idx`. If `max_tranc_id` is not zero, versions with a
greater transaction id are hidden. `TwoMergeIterator(it_a, it_b,
max_tranc_id)` merges two such cursors in key order. When both cursors hold
the same key, the entry from `it_a` wins.

## Command layer

`RedisServer(engine)` takes an engine object and calls the command methods
on it. Each method receives the full argument list, command name included,
and returns the RESP reply. The methods are `set`, `get`, `delete` (for
`DEL`), `incr`, `decr`, `expire`, `ttl`, `hset`, `hget`, `hdel`, `hkeys`,
`lpush`, `rpush`, `lpop`, `rpop`, `llen`, `lrange`, `zadd`, `zrem`,
`zrange`, `zcard`, `zscore`, `zincrby`, `zrank`, `sadd`, `srem`,
`sismember`, `scard` and `smembers`. There are two exceptions. `incr` and
`decr` return the bare number, which the handler wraps as `:<n>\r\n`.
`FLUSHALL` calls `engine.clear()`, `SAVE` calls `engine.flushall()`, and
both reply `+OK\r\n`.

```python
from lsmkv.server import RedisServer

server = RedisServer(engine)
server.handle_request("*3\r\n$3\r\nSET\r\n$3\r\nkey\r\n$5\r\nvalue\r\n")
server.serve("127.0.0.1", 6379)   # blocks, answering TCP clients
```

`handle_request` answers the inline request `PING\r\n` and the `PING`
command with `+PONG\r\n`. A wrong argument count gets `-ERR wrong number of
arguments for '<name>' command`. A malformed request gets `-ERR Protocol
error: ...`. An unknown command gets `-ERR unknown command '<name>'`.
`parse_request` can also be used on its own. It returns the argument list
or raises `ProtocolError`.

## What this package does not do

It contains no storage engine. There is no memtable, no SSTable files on
disk, no compaction, no write-ahead log and no transaction manager. Nothing
here provides the engine object that `RedisServer` needs. You must supply
one that implements the command methods above. The package also installs
no command-line program.