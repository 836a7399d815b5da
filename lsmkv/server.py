"""RESP request parsing, command dispatch and a TCP front end for the store."""

from __future__ import annotations

import logging
import re
import socketserver
import threading
from typing import Callable, Sequence

from . import handler
from .handler import Ops, string_to_ops

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(rb"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_RECV_SIZE = 65536

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 6379


class ProtocolError(ValueError):
    """The request does not follow the RESP array-of-bulk-strings form."""


def _to_bytes(request: bytes | bytearray | str) -> bytes:
    if isinstance(request, str):
        return request.encode("utf-8", "surrogateescape")
    return bytes(request)


def _parse_int(data: bytes, start: int, message: str) -> int:
    match = _INT_PREFIX.match(data, start)
    if match is None:
        raise ProtocolError(message)
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ProtocolError(message)
    return value


def parse_request(request: bytes | bytearray | str) -> list[str]:
    """Split a RESP array of bulk strings into its arguments."""
    data = _to_bytes(request)
    if not data:
        raise ProtocolError("expected '*'")

    count = _parse_int(data, 1, "invalid number of elements")
    pos = data.find(b"\n") + 1

    args: list[str] = []
    for _ in range(count):
        if pos >= len(data) or data[pos] != ord("$"):
            raise ProtocolError("expected '$'")
        newline = data.find(b"\n", pos)
        length = _parse_int(data, pos + 1, "invalid bulk string length")
        if newline < 0 or length < 0:
            raise ProtocolError("invalid bulk string length")
        pos = newline + 1
        if pos + length > len(data):
            raise ProtocolError("bulk string length exceeds request size")
        args.append(data[pos : pos + length].decode("utf-8", "surrogateescape"))
        pos = data.find(b"\n", pos + length) + 1

    if not args:
        raise ProtocolError("empty command")
    return args


_ArgsHandler = Callable[[Sequence[str], object], str]

_ARGS_HANDLERS: dict[Ops, _ArgsHandler] = {
    Ops.SET: handler.set_handler,
    Ops.GET: handler.get_handler,
    Ops.DEL: handler.del_handler,
    Ops.INCR: handler.incr_handler,
    Ops.DECR: handler.decr_handler,
    Ops.EXPIRE: handler.expire_handler,
    Ops.TTL: handler.ttl_handler,
    Ops.HSET: handler.hset_handler,
    Ops.HGET: handler.hget_handler,
    Ops.HDEL: handler.hdel_handler,
    Ops.HKEYS: handler.hkeys_handler,
    Ops.LLEN: handler.llen_handler,
    Ops.LPUSH: handler.lpush_handler,
    Ops.RPUSH: handler.rpush_handler,
    Ops.LPOP: handler.lpop_handler,
    Ops.RPOP: handler.rpop_handler,
    Ops.LRANGE: handler.lrange_handler,
    Ops.ZADD: handler.zadd_handler,
    Ops.ZCARD: handler.zcard_handler,
    Ops.ZINCRBY: handler.zincrby_handler,
    Ops.ZRANGE: handler.zrange_handler,
    Ops.ZRANK: handler.zrank_handler,
    Ops.ZSCORE: handler.zscore_handler,
    Ops.ZREM: handler.zrem_handler,
    Ops.SADD: handler.sadd_handler,
    Ops.SMEMBERS: handler.smembers_handler,
    Ops.SCARD: handler.scard_handler,
    Ops.SISMEMBER: handler.sismember_handler,
    Ops.SREM: handler.srem_handler,
}


class _ConnectionHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        peer = self.client_address
        logger.debug("Connection from %s", peer)
        while True:
            chunk = self.request.recv(_RECV_SIZE)
            if not chunk:
                break
            logger.debug("Received message: %r", chunk)
            reply = self.server.app.handle_request(chunk)  # type: ignore[attr-defined]
            self.request.sendall(reply.encode("utf-8", "surrogateescape"))
        logger.debug("Connection closed from %s", peer)


class _TCPServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: tuple[str, int], app: "RedisServer") -> None:
        self.app = app
        super().__init__(address, _ConnectionHandler)


class RedisServer:
    """Answers RESP commands using a key/value ``engine``."""

    def __init__(self, engine: object) -> None:
        self.engine = engine
        self._lock = threading.Lock()

    def handle_request(self, request: bytes | bytearray | str) -> str:
        """Parse one request and return the complete RESP reply."""
        data = _to_bytes(request)
        if data == b"PING\r\n":
            return "+PONG\r\n"
        try:
            args = parse_request(data)
        except ProtocolError as exc:
            return f"-ERR Protocol error: {exc}\r\n"
        logger.debug("Request: %s", " ".join(args))

        with self._lock:
            return self._dispatch(args)

    def _dispatch(self, args: list[str]) -> str:
        op = string_to_ops(args[0])
        if op is Ops.PING:
            return "+PONG\r\n"
        if op is Ops.FLUSHALL:
            return handler.flushall_handler(self.engine)
        if op is Ops.SAVE:
            return handler.save_handler(self.engine)
        command = _ARGS_HANDLERS.get(op)
        if command is None:
            return f"-ERR unknown command '{args[0]}'\r\n"
        return command(args, self.engine)

    def _bind(self, host: str, port: int) -> _TCPServer:
        return _TCPServer((host, port), self)

    def serve(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        """Listen on ``host:port`` and answer clients until interrupted."""
        with self._bind(host, port) as server:
            logger.info("Listening on %s:%d", host, server.server_address[1])
            server.serve_forever()