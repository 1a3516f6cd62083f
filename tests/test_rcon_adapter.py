from __future__ import annotations

import socket
import struct
import threading

import pytest

from plotty.adapters.rcon import (
    PACKET_COMMAND,
    PACKET_LOGIN,
    PACKET_RESPONSE,
    RconWorldExecutor,
    encode_packet,
    parse_address,
)
from plotty.adapters.world_command import ERR_PREFIX, EchoWorldExecutor, WorldCommand, check_response
from plotty.errors import ExternalApplicationError, TransportError


class FakeRconServer:
    """Single-connection RCON server answering commands from a lookup table."""

    def __init__(self, password: str, replies: dict[str, str]) -> None:
        self.password = password
        self.replies = replies
        self.received: list[tuple[int, str]] = []
        self.closed = threading.Event()
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.address = "127.0.0.1:%d" % self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        conn, _ = self._listener.accept()
        with conn:
            while True:
                header = self._recv(conn, 4)
                if header is None:
                    break
                (length,) = struct.unpack("<i", header)
                data = self._recv(conn, length)
                request_id, packet_type = struct.unpack("<ii", data[:8])
                body = data[8:-2].decode("utf-8")
                self.received.append((packet_type, body))
                if packet_type == PACKET_LOGIN:
                    reply_id = request_id if body == self.password else -1
                    conn.sendall(encode_packet(reply_id, PACKET_COMMAND, ""))
                else:
                    conn.sendall(encode_packet(request_id, PACKET_RESPONSE, self.replies.get(body, "")))
        self.closed.set()
        self._listener.close()

    @staticmethod
    def _recv(conn: socket.socket, size: int) -> bytes | None:
        data = b""
        while len(data) < size:
            chunk = conn.recv(size - len(data))
            if not chunk:
                return None
            data += chunk
        return data


def test_encode_packet_layout() -> None:
    packet = encode_packet(7, PACKET_COMMAND, "list")

    assert packet == struct.pack("<iii", 14, 7, 2) + b"list\x00\x00"


def test_parse_address_defaults_port() -> None:
    assert parse_address("mc.example.org") == ("mc.example.org", 25575)
    assert parse_address("127.0.0.1:25580") == ("127.0.0.1", 25580)
    with pytest.raises(TransportError):
        parse_address("host:port")


def test_rcon_session_authenticates_sends_and_closes() -> None:
    server = FakeRconServer("hunter2", {"//pos1 1,0,2": "First position set to (1, 0, 2)."})
    executor = RconWorldExecutor(address=server.address, password="hunter2", timeout_seconds=2)

    with executor.session() as conn:
        reply = conn.send(WorldCommand(command="//pos1 1,0,2"))

    assert reply == "First position set to (1, 0, 2)."
    assert server.received == [(PACKET_LOGIN, "hunter2"), (PACKET_COMMAND, "//pos1 1,0,2")]
    assert server.closed.wait(timeout=2)


def test_rcon_session_closes_on_error_inside_block() -> None:
    server = FakeRconServer("pw", {"rg update x": f"{ERR_PREFIX}Region x not found"})
    executor = RconWorldExecutor(address=server.address, password="pw", timeout_seconds=2)

    with pytest.raises(ExternalApplicationError):
        with executor.session() as conn:
            check_response(conn.send(WorldCommand(command="rg update x")))

    assert server.closed.wait(timeout=2)


def test_rcon_rejected_password_is_transport_error() -> None:
    server = FakeRconServer("right", {})
    executor = RconWorldExecutor(address=server.address, password="wrong", timeout_seconds=2)

    with pytest.raises(TransportError, match="authentication rejected"):
        with executor.session():
            pass

    assert server.closed.wait(timeout=2)


def test_unreachable_server_is_transport_error() -> None:
    with socket.create_server(("127.0.0.1", 0)) as free_socket:
        port = free_socket.getsockname()[1]
    executor = RconWorldExecutor(address=f"127.0.0.1:{port}", password="pw", timeout_seconds=1)

    with pytest.raises(TransportError, match="RCON connection failed"):
        with executor.session():
            pass


def test_check_response_detects_error_marker() -> None:
    assert check_response("Region updated.") == "Region updated."
    with pytest.raises(ExternalApplicationError) as excinfo:
        check_response(f"{ERR_PREFIX}You don't have permission.")
    assert excinfo.value.message == f"{ERR_PREFIX}You don't have permission."


def test_echo_executor_records_commands() -> None:
    executor = EchoWorldExecutor()

    with executor.session() as conn:
        assert conn.send(WorldCommand(command="//expand vert")) == "executed: //expand vert"

    assert executor.sent == ["//expand vert"]
