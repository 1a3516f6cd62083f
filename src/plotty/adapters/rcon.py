"""Source RCON transport for the live Minecraft server.

Wire format of every packet, all integers little-endian::

    int32 length | int32 request id | int32 type | payload | 0x00 0x00

``length`` counts everything after itself. A login reply with request id -1
means the password was rejected.
"""

from __future__ import annotations

import itertools
import logging
import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from plotty.adapters.world_command import WorldCommand
from plotty.errors import TransportError

PACKET_RESPONSE = 0
PACKET_COMMAND = 2
PACKET_LOGIN = 3

_HEADER = struct.Struct("<iii")
_MAX_PAYLOAD = 1446

logger = logging.getLogger("plotty.rcon")


def encode_packet(request_id: int, packet_type: int, payload: str) -> bytes:
    body = payload.encode("utf-8")
    if len(body) > _MAX_PAYLOAD:
        raise TransportError(f"RCON payload exceeds {_MAX_PAYLOAD} bytes")
    return _HEADER.pack(len(body) + 10, request_id, packet_type) + body + b"\x00\x00"


def parse_address(address: str, default_port: int = 25575) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, default_port
    try:
        return host, int(port)
    except ValueError as exc:
        raise TransportError(f"Invalid RCON address: {address}") from exc


class RconConnection:
    """Authenticated RCON session over a single TCP socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._ids = itertools.count(1)

    @classmethod
    def open(cls, address: str, password: str, *, timeout_seconds: float = 5.0) -> RconConnection:
        host, port = parse_address(address)
        try:
            sock = socket.create_connection((host, port), timeout=timeout_seconds)
        except OSError as exc:
            raise TransportError(f"RCON connection failed: {exc}") from exc

        conn = cls(sock)
        try:
            conn.authenticate(password)
        except BaseException:
            conn.close()
            raise
        return conn

    def authenticate(self, password: str) -> None:
        request_id = next(self._ids)
        self._write(request_id, PACKET_LOGIN, password)
        reply_id, _, _ = self._read()
        if reply_id == -1:
            raise TransportError("RCON connection failed: authentication rejected")
        if reply_id != request_id:
            raise TransportError(f"RCON connection failed: unexpected login reply id {reply_id}")

    def send(self, payload: WorldCommand) -> str:
        request_id = next(self._ids)
        self._write(request_id, PACKET_COMMAND, payload.command)
        reply_id, _, body = self._read()
        if reply_id != request_id:
            raise TransportError(f"RCON reply id {reply_id} does not match request {request_id}")
        logger.debug("rcon_command", extra={"command": payload.command, "response": body})
        return body

    def close(self) -> None:
        self._sock.close()

    def _write(self, request_id: int, packet_type: int, payload: str) -> None:
        try:
            self._sock.sendall(encode_packet(request_id, packet_type, payload))
        except OSError as exc:
            raise TransportError(f"RCON send failed: {exc}") from exc

    def _read(self) -> tuple[int, int, str]:
        (length,) = struct.unpack("<i", self._recv_exact(4))
        if length < 10:
            raise TransportError(f"RCON packet too short ({length} bytes)")
        data = self._recv_exact(length)
        request_id, packet_type = struct.unpack("<ii", data[:8])
        body = data[8:-2].decode("utf-8", errors="replace")
        return request_id, packet_type, body

    def _recv_exact(self, size: int) -> bytes:
        chunks = bytearray()
        while len(chunks) < size:
            try:
                chunk = self._sock.recv(size - len(chunks))
            except OSError as exc:
                raise TransportError(f"RCON receive failed: {exc}") from exc
            if not chunk:
                raise TransportError("RCON connection closed by server")
            chunks.extend(chunk)
        return bytes(chunks)


@dataclass(slots=True)
class RconWorldExecutor:
    """Opens a fresh authenticated RCON connection per command sequence."""

    address: str
    password: str
    timeout_seconds: float = 5.0

    @contextmanager
    def session(self) -> Iterator[RconConnection]:
        conn = RconConnection.open(self.address, self.password, timeout_seconds=self.timeout_seconds)
        try:
            yield conn
        finally:
            try:
                conn.close()
            except OSError:
                logger.exception("rcon_close_failed", extra={"address": self.address})
            else:
                logger.debug("rcon_connection_closed", extra={"address": self.address})
