# rcon_cli/connection.py
from __future__ import annotations

import logging
import socket
from enum import Enum, auto
from typing import Optional, Tuple, Union

from .errors import (
    AlreadyConnected, AuthenticationFailed, ConnectError, InvalidAddress,
    NotConnected, RconIOError, SocketError,
)
from .packet import (
    AUTH_FAILED_ID, SERVERDATA_AUTH, SERVERDATA_AUTH_RESPONSE, Packet,
    body_bytes, decode_packet, encode_packet,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1.0  # seconds; also ends a multi-packet response
MAX_PACKET_ID = 0x7FFFFFFF


class ConnState(Enum):
    UNINITIALIZED = auto()
    INITIALIZED = auto()   # address bound, socket created, not connected
    CONNECTED = auto()     # TCP up, not authenticated
    AUTHENTICATED = auto()
    CLOSED = auto()

    def is_open(self) -> bool:
        return self in (ConnState.CONNECTED, ConnState.AUTHENTICATED)


class Connection:
    """
    One RCON transport: a TCP socket, its state and its packet id counter.

    init() -> connect() -> authenticate() -> ... -> disconnect(). After
    disconnect() the same object can be re-used by calling init() again.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self.state = ConnState.UNINITIALIZED
        self.address: Optional[Tuple] = None
        self._sock: Optional[socket.socket] = None
        self._family = socket.AF_INET
        self._packet_id = 0

    def __repr__(self) -> str:
        return f"Connection(address={self.address!r}, state={self.state.name})"

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc) -> None:
        if self.state is not ConnState.UNINITIALIZED:
            self.disconnect()

    # --- state transitions ---------------------------------------------------

    def init(self, address: str, port: int) -> None:
        if self.state.is_open():
            raise AlreadyConnected(f"already connected to {self.address}")
        if not address:
            raise InvalidAddress("no server address given")
        try:
            port = int(port)
        except (TypeError, ValueError) as e:
            raise InvalidAddress(f"invalid port {port!r}") from e
        if not 0 < port < 65536:
            raise InvalidAddress(f"invalid port {port}")
        try:
            infos = socket.getaddrinfo(address, port, type=socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError) as e:
            raise InvalidAddress(f"cannot resolve {address!r}: {e}") from e
        if not infos:
            raise InvalidAddress(f"cannot resolve {address!r}")

        self._close_socket()
        family, socktype, proto, _, sockaddr = infos[0]
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as e:
            raise SocketError(f"cannot create socket: {e}") from e
        try:
            sock.settimeout(self.timeout)
        except (OSError, ValueError) as e:
            sock.close()
            raise SocketError(f"cannot set receive timeout: {e}") from e

        self._sock = sock
        self._family = family
        self.address = sockaddr
        self._packet_id = 0
        self.state = ConnState.INITIALIZED
        logger.debug(f"initialized for {address}:{port} -> {sockaddr}")

    def connect(self) -> None:
        if self.state.is_open():
            raise AlreadyConnected(f"already connected to {self.address}")
        if self.state is not ConnState.INITIALIZED:
            raise NotConnected("connection not initialized; call init() first")
        try:
            self._sock.connect(self.address)
        except OSError as e:
            raise ConnectError(f"cannot connect to {self._where()}: {e}", cause=e) from e
        self.state = ConnState.CONNECTED
        logger.info(f"connected to {self._where()}")

    def authenticate(self, password: str) -> None:
        if self.state is ConnState.AUTHENTICATED:
            raise AlreadyConnected("already authenticated")
        if self.state is not ConnState.CONNECTED:
            raise NotConnected("not connected; call connect() first")

        self.send_packet(SERVERDATA_AUTH, password)
        while True:
            packet = self.read_packet()
            if packet.type != SERVERDATA_AUTH_RESPONSE:
                # Source servers send an empty RESPONSE_VALUE ahead of the answer
                logger.debug(f"skipping packet type={packet.type} while authenticating")
                continue
            if packet.id == AUTH_FAILED_ID:
                logger.warning(f"authentication rejected by {self._where()}")
                raise AuthenticationFailed(f"authentication rejected by {self._where()}")
            break
        self.state = ConnState.AUTHENTICATED
        logger.info(f"authenticated with {self._where()}")

    def disconnect(self) -> None:
        if self.state is ConnState.UNINITIALIZED:
            raise NotConnected("connection was never opened")
        if self.state is ConnState.CLOSED:
            return
        try:
            self._sock.close()
        finally:
            self._sock = None
            self.state = ConnState.CLOSED
        logger.info(f"closed connection to {self._where()}")

    # --- packet I/O ----------------------------------------------------------

    def next_id(self) -> int:
        self._packet_id = self._packet_id + 1 if self._packet_id < MAX_PACKET_ID else 1
        return self._packet_id

    def send_packet(self, ptype: int, body: Union[str, bytes]) -> int:
        """Frame `body` and write all of it. Returns the packet id used."""
        if not self.state.is_open():
            raise NotConnected("not connected")
        raw = body_bytes(body)  # validated before an id is taken
        pid = self.next_id()
        data = memoryview(encode_packet(raw, ptype, pid))
        sent = 0
        while sent < len(data):
            try:
                n = self._sock.send(data[sent:])
            except OSError as e:
                raise RconIOError(f"send failed: {e}") from e
            if n == 0:
                raise RconIOError("connection closed while sending")
            sent += n
        logger.debug(f"sent packet id={pid} type={ptype} size={len(data) - 4}")
        return pid

    def read_packet(self) -> Packet:
        if not self.state.is_open():
            raise NotConnected("not connected")
        return decode_packet(self._sock.recv)

    # --- helpers -------------------------------------------------------------

    def _where(self) -> str:
        if not self.address:
            return "?"
        host, port = self.address[:2]
        return f"[{host}]:{port}" if self._family == socket.AF_INET6 else f"{host}:{port}"

    def _close_socket(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
