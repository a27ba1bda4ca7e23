"""
Shared fixtures: a threaded stub RCON server and a fake socket that hands out
data in small chunks.
"""

import socket
import threading
from typing import List, Optional, Sequence, Union

import pytest

from rcon_cli.errors import RconError
from rcon_cli.packet import (
    AUTH_FAILED_ID, SERVERDATA_AUTH, SERVERDATA_AUTH_RESPONSE,
    SERVERDATA_EXECCOMMAND, SERVERDATA_RESPONSE_VALUE, Packet,
    decode_packet, encode_packet,
)

FAST_TIMEOUT = 0.2


class ChunkedSocket:
    """
    Socket stand-in. recv() returns at most `chunk` bytes per call and, once
    the data runs out, either times out or reports EOF. send() accepts at
    most `send_limit` bytes per call.
    """

    def __init__(self, data: bytes = b"", chunk: int = 1 << 16, eof: bool = False,
                 send_limit: Optional[int] = None):
        self.buf = bytearray(data)
        self.chunk = chunk
        self.eof = eof
        self.send_limit = send_limit
        self.sent = bytearray()
        self.recv_calls = 0
        self.closed = False

    def feed(self, data: bytes) -> None:
        self.buf += data

    def recv(self, n: int) -> bytes:
        self.recv_calls += 1
        if not self.buf:
            if self.eof:
                return b""
            raise socket.timeout("timed out")
        k = min(n, self.chunk, len(self.buf))
        out = bytes(self.buf[:k])
        del self.buf[:k]
        return out

    def send(self, data) -> int:
        k = len(data) if self.send_limit is None else min(self.send_limit, len(data))
        self.sent += bytes(data[:k])
        return k

    def close(self) -> None:
        self.closed = True


class StubRconServer:
    """
    Minimal RCON server on an ephemeral loopback port.

    AUTH gets `pre_auth` packets first, then an AUTH_RESPONSE carrying the
    request id (or -1 on a wrong password). A non-empty command is answered
    with one RESPONSE_VALUE per entry of `responses` (bytes are sent raw);
    an empty command is echoed back with an empty body.
    """

    def __init__(self, password: str = "secret", responses: Sequence[Union[str, bytes]] = ("ok",),
                 pre_auth: Sequence[Packet] = (), chunk: Optional[int] = None,
                 close_after_command: bool = False):
        self.password = password
        self.responses = list(responses)
        self.pre_auth = list(pre_auth)
        self.chunk = chunk
        self.close_after_command = close_after_command
        self.received: List[Packet] = []
        self.connections = 0
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(8)
        self.host, self.port = self._listener.getsockname()
        self._threads: List[threading.Thread] = []
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)

    def start(self) -> "StubRconServer":
        self._accept_thread.start()
        return self

    def stop(self) -> None:
        self._listener.close()

    def _accept_loop(self) -> None:
        while True:
            try:
                conn, _ = self._listener.accept()
            except OSError:
                return
            self.connections += 1
            t = threading.Thread(target=self._serve, args=(conn,), daemon=True)
            self._threads.append(t)
            t.start()

    def _send(self, conn: socket.socket, data: bytes) -> None:
        if not self.chunk:
            conn.sendall(data)
            return
        for i in range(0, len(data), self.chunk):
            conn.sendall(data[i:i + self.chunk])

    def _serve(self, conn: socket.socket) -> None:
        with conn:
            while True:
                try:
                    req = decode_packet(conn.recv)
                except (RconError, OSError):
                    return
                self.received.append(req)
                if req.type == SERVERDATA_AUTH:
                    for p in self.pre_auth:
                        self._send(conn, p.to_bytes())
                    rid = req.id if req.body == self.password else AUTH_FAILED_ID
                    self._send(conn, encode_packet("", SERVERDATA_AUTH_RESPONSE, rid))
                elif req.type == SERVERDATA_EXECCOMMAND:
                    if req.body == "":
                        self._send(conn, encode_packet("", SERVERDATA_RESPONSE_VALUE, req.id))
                        continue
                    for body in self.responses:
                        if isinstance(body, bytes):
                            self._send(conn, body)
                        else:
                            self._send(conn, encode_packet(body, SERVERDATA_RESPONSE_VALUE, req.id))
                    if self.close_after_command:
                        return


@pytest.fixture
def rcon_server():
    """Factory fixture: rcon_server(**options) -> running StubRconServer."""
    servers = []

    def start(**kwargs) -> StubRconServer:
        srv = StubRconServer(**kwargs).start()
        servers.append(srv)
        return srv

    yield start
    for srv in servers:
        srv.stop()


@pytest.fixture
def free_port():
    """A loopback port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
