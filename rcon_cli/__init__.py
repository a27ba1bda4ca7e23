"""
rcon-cli - a client for the Source RCON protocol.

Authenticate against a game server's remote console over TCP, run text
commands and collect their (possibly multi-packet) output.
"""

from .connection import Connection, ConnState
from .errors import (
    AlreadyConnected, AuthenticationFailed, ConfigError, ConnectError,
    InvalidAddress, MalformedFrame, NotAuthenticated, NotConnected,
    RconError, RconIOError, ShortRead, SocketError, Timeout,
)
from .packet import (
    SERVERDATA_AUTH, SERVERDATA_AUTH_RESPONSE, SERVERDATA_EXECCOMMAND,
    SERVERDATA_RESPONSE_VALUE, Packet, decode_packet, encode_packet,
)
from .rcon import RconClient, run

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnState",
    "Packet",
    "RconClient",
    "run",
    "encode_packet",
    "decode_packet",
    "SERVERDATA_AUTH",
    "SERVERDATA_AUTH_RESPONSE",
    "SERVERDATA_EXECCOMMAND",
    "SERVERDATA_RESPONSE_VALUE",
    "RconError",
    "InvalidAddress",
    "SocketError",
    "ConnectError",
    "AlreadyConnected",
    "NotConnected",
    "AuthenticationFailed",
    "NotAuthenticated",
    "Timeout",
    "ShortRead",
    "RconIOError",
    "MalformedFrame",
    "ConfigError",
]
