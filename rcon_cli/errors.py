# rcon_cli/errors.py
from __future__ import annotations

import errno as _errno
from typing import Optional


class RconError(Exception):
    """Base class for everything the client raises. `errno` doubles as the CLI exit code."""

    errno = _errno.EIO

    def __init__(self, message: str = "", *, partial: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        # text already reassembled when a response read fails half-way
        self.partial = partial


class InvalidAddress(RconError):
    errno = _errno.EDESTADDRREQ


class SocketError(RconError):
    errno = _errno.EIO


class ConnectError(RconError, ConnectionError):
    errno = _errno.ECONNREFUSED

    def __init__(self, message: str = "", *, cause: Optional[OSError] = None):
        super().__init__(message)
        if cause is not None and cause.errno:
            self.errno = cause.errno


class AlreadyConnected(RconError):
    errno = _errno.EISCONN


class NotConnected(RconError):
    errno = _errno.ENOTCONN


class AuthenticationFailed(RconError, PermissionError):
    errno = _errno.EACCES


class NotAuthenticated(RconError):
    errno = _errno.EPERM


class Timeout(RconError, TimeoutError):
    errno = _errno.ETIME


class ShortRead(RconError, ConnectionError):
    errno = _errno.ECONNRESET


class RconIOError(RconError):
    errno = _errno.EIO


class MalformedFrame(RconError):
    errno = _errno.EPROTO


class ConfigError(RconError):
    errno = _errno.ENOENT
