# rcon_cli/packet.py
"""
Source RCON wire format.

Every frame is laid out as::

    uint32 size | int32 id | uint32 type | body bytes | 0x00 | 0x00

with all integers little-endian and ``size == len(body) + 10`` (id, type and
the two trailing NULs). The first NUL ends the body, the second terminates
the frame. ``size`` does not count itself, so a frame is ``size + 4`` bytes.
"""
from __future__ import annotations

import logging
import socket
import struct
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .errors import MalformedFrame, RconIOError, ShortRead, Timeout

logger = logging.getLogger(__name__)

SERVERDATA_AUTH = 3
SERVERDATA_AUTH_RESPONSE = 2
SERVERDATA_EXECCOMMAND = 2
SERVERDATA_RESPONSE_VALUE = 0

AUTH_FAILED_ID = -1

HEADER_SIZE = 12  # size, id, type
MIN_PACKET_SIZE = 10
MAX_PACKET_SIZE = 1 << 20

Recv = Callable[[int], bytes]


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def body_bytes(body: Union[str, bytes]) -> bytes:
    """UTF-8 bytes of an outgoing body; NUL is not allowed on the wire."""
    raw = body.encode("utf-8") if isinstance(body, str) else bytes(body)
    if b"\x00" in raw:
        raise MalformedFrame("packet body must not contain NUL bytes")
    return raw


@dataclass(frozen=True)
class Packet:
    id: int
    type: int
    body: str = ""
    # size field as read off the wire; None for packets built locally
    wire_size: Optional[int] = field(default=None, compare=False, repr=False)

    @property
    def size(self) -> int:
        if self.wire_size is not None:
            return self.wire_size
        return len(self.body.encode("utf-8")) + MIN_PACKET_SIZE

    def to_bytes(self) -> bytes:
        return encode_packet(self.body, self.type, self.id)


def encode_packet(body: Union[str, bytes], ptype: int, pid: int) -> bytes:
    raw = body_bytes(body)
    size = len(raw) + MIN_PACKET_SIZE
    # field by field: never rely on in-memory struct layout
    return b"".join((
        struct.pack("<I", size),
        struct.pack("<i", _as_int32(pid)),
        struct.pack("<I", ptype & 0xFFFFFFFF),
        raw,
        b"\x00",
        b"\x00",
    ))


def recv_exact(recv: Recv, count: int, started: bool = False) -> bytes:
    """
    Read exactly `count` bytes, looping over short reads.

    `started` tells whether earlier bytes of the same frame were consumed; a
    timeout then leaves the stream out of sync and is reported as an I/O error
    instead of `Timeout`.
    """
    buf = bytearray()
    while len(buf) < count:
        try:
            chunk = recv(count - len(buf))
        except (socket.timeout, TimeoutError) as e:
            if started or buf:
                raise RconIOError("timed out in the middle of a packet") from e
            raise Timeout("no data from server before the receive timeout") from e
        except OSError as e:
            raise RconIOError(f"receive failed: {e}") from e
        if not chunk:
            raise ShortRead("connection closed by server")
        buf += chunk
    return bytes(buf)


def decode_packet(recv: Recv) -> Packet:
    """Pull one whole packet off `recv`; never returns a half-read packet."""
    (size,) = struct.unpack("<I", recv_exact(recv, 4))
    if size < MIN_PACKET_SIZE or size > MAX_PACKET_SIZE:
        raise MalformedFrame(f"impossible packet size {size}")
    (pid,) = struct.unpack("<i", recv_exact(recv, 4, started=True))
    (ptype,) = struct.unpack("<I", recv_exact(recv, 4, started=True))
    # body plus the NUL ending it
    body = recv_exact(recv, size - 9, started=True)
    terminator = recv_exact(recv, 1, started=True)
    if body[-1:] != b"\x00" or terminator != b"\x00":
        raise MalformedFrame("packet is not NUL terminated")
    # the body ends at its first NUL, whatever the size field claims
    text = body[:-1].split(b"\x00", 1)[0].decode("utf-8", "replace")
    packet = Packet(pid, ptype, text, wire_size=size)
    logger.debug(f"recv packet id={pid} type={ptype} size={size}")
    return packet
