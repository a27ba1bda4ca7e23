# rcon_cli/rcon.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .connection import DEFAULT_TIMEOUT, ConnState, Connection
from .errors import AuthenticationFailed, NotAuthenticated, RconError, ShortRead, Timeout
from .packet import SERVERDATA_EXECCOMMAND

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[], str]


class RconClient:
    """
    An authenticated RCON session on top of a `Connection`.

    By default a response is complete once the server stays silent for one
    receive timeout, which is how multi-packet answers get stitched together.
    With ``sentinel=True`` an empty command is sent after each real one and the
    response ends when the server answers that empty command instead.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 27015, password: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, sentinel: bool = False,
                 ask_password: Optional[PasswordPrompt] = None):
        self.host = host
        self.port = port
        self.password = password
        self.sentinel = sentinel
        self.ask_password = ask_password
        self.conn = Connection(timeout=timeout)
        # one command in flight per socket
        self._lock = threading.Lock()

    def __enter__(self) -> "RconClient":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def authenticated(self) -> bool:
        return self.conn.state is ConnState.AUTHENTICATED

    def open(self) -> None:
        password = self.password
        if password is None:
            if self.ask_password is None:
                raise AuthenticationFailed("no password available")
            password = self.ask_password()
        self.conn.init(self.host, self.port)
        try:
            self.conn.connect()
            self.conn.authenticate(password)
        except RconError:
            self.conn.disconnect()
            raise

    def close(self) -> None:
        if self.conn.state is not ConnState.UNINITIALIZED:
            self.conn.disconnect()

    def send_command(self, text: str) -> int:
        if not self.authenticated:
            raise NotAuthenticated("not authenticated")
        return self.conn.send_packet(SERVERDATA_EXECCOMMAND, text)

    def receive_response(self, sentinel_id: Optional[int] = None) -> str:
        """
        Reassemble one response.

        Without `sentinel_id`, reading stops at the first timeout or EOF and
        whatever arrived so far is the answer (possibly ""). With it, reading
        stops at the packet echoing that id and a timeout is an error.
        Other failures carry the text read so far in ``exc.partial``.
        """
        if not self.authenticated:
            raise NotAuthenticated("not authenticated")
        parts: List[str] = []
        while True:
            try:
                packet = self.conn.read_packet()
            except (Timeout, ShortRead) as e:
                if sentinel_id is None:
                    logger.debug(f"end of response after {len(parts)} packet(s): {e}")
                    break
                e.partial = "".join(parts)
                raise
            except RconError as e:
                e.partial = "".join(parts)
                raise
            if sentinel_id is not None and packet.id == sentinel_id:
                break
            parts.append(packet.body)
        return "".join(parts)

    def command(self, text: str) -> str:
        """Send `text` and return its output; concurrent callers take turns."""
        with self._lock:
            self.send_command(text)
            if not self.sentinel:
                return self.receive_response()
            marker = self.conn.send_packet(SERVERDATA_EXECCOMMAND, "")
            return self.receive_response(sentinel_id=marker)


def run(address: str, port: int, password: Optional[str], command: str,
        timeout: float = DEFAULT_TIMEOUT, sentinel: bool = False,
        ask_password: Optional[PasswordPrompt] = None) -> str:
    """Connect, authenticate, run one command and return its output."""
    client = RconClient(address, port, password, timeout=timeout, sentinel=sentinel,
                        ask_password=ask_password)
    with client:
        return client.command(command)
