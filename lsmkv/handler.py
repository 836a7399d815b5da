"""Command name parsing and argument checks for the key/value server.

Every handler receives the full command (name included) as a list of
strings and returns a complete RESP reply.  The work itself is done by an
engine object whose methods take the same argument list.
"""

from __future__ import annotations

import logging
import string
from enum import Enum
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class _Engine(Protocol):
    def clear(self) -> None: ...
    def flushall(self) -> None: ...
    def set(self, args: Sequence[str]) -> str: ...
    def get(self, args: Sequence[str]) -> str: ...
    def delete(self, args: Sequence[str]) -> str: ...
    def incr(self, args: Sequence[str]) -> str: ...
    def decr(self, args: Sequence[str]) -> str: ...
    def expire(self, args: Sequence[str]) -> str: ...
    def ttl(self, args: Sequence[str]) -> str: ...
    def hset(self, args: Sequence[str]) -> str: ...
    def hget(self, args: Sequence[str]) -> str: ...
    def hdel(self, args: Sequence[str]) -> str: ...
    def hkeys(self, args: Sequence[str]) -> str: ...
    def lpush(self, args: Sequence[str]) -> str: ...
    def rpush(self, args: Sequence[str]) -> str: ...
    def lpop(self, args: Sequence[str]) -> str: ...
    def rpop(self, args: Sequence[str]) -> str: ...
    def llen(self, args: Sequence[str]) -> str: ...
    def lrange(self, args: Sequence[str]) -> str: ...
    def zadd(self, args: Sequence[str]) -> str: ...
    def zrem(self, args: Sequence[str]) -> str: ...
    def zrange(self, args: Sequence[str]) -> str: ...
    def zcard(self, args: Sequence[str]) -> str: ...
    def zscore(self, args: Sequence[str]) -> str: ...
    def zincrby(self, args: Sequence[str]) -> str: ...
    def zrank(self, args: Sequence[str]) -> str: ...
    def sadd(self, args: Sequence[str]) -> str: ...
    def srem(self, args: Sequence[str]) -> str: ...
    def sismember(self, args: Sequence[str]) -> str: ...
    def scard(self, args: Sequence[str]) -> str: ...
    def smembers(self, args: Sequence[str]) -> str: ...


class Ops(Enum):
    PING = "ping"
    FLUSHALL = "flushall"
    SAVE = "save"
    GET = "get"
    SET = "set"
    DEL = "del"
    INCR = "incr"
    DECR = "decr"
    EXPIRE = "expire"
    TTL = "ttl"
    HSET = "hset"
    HGET = "hget"
    HDEL = "hdel"
    HKEYS = "hkeys"
    LPUSH = "lpush"
    RPUSH = "rpush"
    LPOP = "lpop"
    RPOP = "rpop"
    LLEN = "llen"
    LRANGE = "lrange"
    ZADD = "zadd"
    ZREM = "zrem"
    ZRANGE = "zrange"
    ZCARD = "zcard"
    ZSCORE = "zscore"
    ZINCRBY = "zincrby"
    ZRANK = "zrank"
    SADD = "sadd"
    SREM = "srem"
    SISMEMBER = "sismember"
    SCARD = "scard"
    SMEMBERS = "smembers"
    UNKNOWN = "unknown"


def string_to_ops(op_str: str) -> Ops:
    """Map a command name, case-insensitively, to its operation."""
    try:
        return Ops(op_str.translate(_ASCII_LOWER))
    except ValueError:
        return Ops.UNKNOWN


def _arity_error(name: str) -> str:
    return f"-ERR wrong number of arguments for '{name}' command\r\n"


def _log(args: Sequence[str]) -> None:
    logger.debug("command is: %s", " ".join(args))


def flushall_handler(engine: _Engine) -> str:
    engine.clear()
    return "+OK\r\n"


def save_handler(engine: _Engine) -> str:
    """Persist everything in memory to disk."""
    engine.flushall()
    return "+OK\r\n"


# ---------------------------------------------------------------- strings
def set_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("SET")
    _log(args)
    return engine.set(args)


def get_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("GET")
    _log(args)
    return engine.get(args)


def del_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 2:
        return _arity_error("DEL")
    _log(args)
    return engine.delete(args)


def incr_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("INCR")
    _log(args)
    return f":{engine.incr(args)}\r\n"


def decr_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("DECR")
    _log(args)
    return f":{engine.decr(args)}\r\n"


def expire_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("EXPIRE")
    _log(args)
    return engine.expire(args)


def ttl_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("TTL")
    _log(args)
    return engine.ttl(args)


# ---------------------------------------------------------------- hashes
def hset_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 4:
        return _arity_error("HSET")
    _log(args)
    return engine.hset(args)


def hget_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("HGET")
    _log(args)
    return engine.hget(args)


def hdel_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("HDEL")
    _log(args)
    return engine.hdel(args)


def hkeys_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("HKEYS")
    _log(args)
    return engine.hkeys(args)


# ---------------------------------------------------------------- lists
def lpush_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("LPUSH")
    _log(args)
    return engine.lpush(args)


def rpush_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("RPUSH")
    _log(args)
    return engine.rpush(args)


def lpop_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("LPOP")
    _log(args)
    return engine.lpop(args)


def rpop_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("RPOP")
    _log(args)
    return engine.rpop(args)


def llen_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("LLEN")
    _log(args)
    return engine.llen(args)


def lrange_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 4:
        return _arity_error("LRANGE")
    _log(args)
    return engine.lrange(args)


# ---------------------------------------------------------------- sorted sets
def zadd_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 4 or (len(args) - 2) % 2 != 0:
        return _arity_error("zadd")
    return engine.zadd(args)


def zrem_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 3:
        return _arity_error("zrem")
    return engine.zrem(args)


def zrange_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 4:
        return _arity_error("zrange")
    return engine.zrange(args)


def zcard_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("zcard")
    return engine.zcard(args)


def zscore_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("zscore")
    return engine.zscore(args)


def zincrby_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 4:
        return _arity_error("zincrby")
    return engine.zincrby(args)


def zrank_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("zrank")
    return engine.zrank(args)


# ---------------------------------------------------------------- sets
def sadd_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 3:
        return _arity_error("sadd")
    return engine.sadd(args)


def srem_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) < 3:
        return _arity_error("srem")
    return engine.srem(args)


def sismember_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 3:
        return _arity_error("sismember")
    return engine.sismember(args)


def scard_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("scard")
    return engine.scard(args)


def smembers_handler(args: Sequence[str], engine: _Engine) -> str:
    if len(args) != 2:
        return _arity_error("smembers")
    return engine.smembers(args)