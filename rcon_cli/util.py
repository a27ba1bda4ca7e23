# rcon_cli/util.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .errors import ConfigError

CONFIG = Path(os.environ.get("RCON_CONFIG", Path.home() / ".config" / "rcon" / "rcon.conf")).expanduser()


@dataclass(frozen=True)
class ServerEntry:
    name: str
    address: str
    port: int
    password: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name}  {self.address}:{self.port}"


def config_path(path: Union[str, Path, None] = None) -> Path:
    return Path(path).expanduser() if path else CONFIG


def parse_entry(line: str, lineno: int = 0) -> ServerEntry:
    """name,address,port[,password] -- the password may itself contain commas."""
    fields = line.strip().split(",", 3)
    where = f" (line {lineno})" if lineno else ""
    if len(fields) < 3 or not fields[0].strip() or not fields[1].strip():
        raise ConfigError(f"malformed entry{where}: expected name,address,port[,password]")
    name, address, port_s = (f.strip() for f in fields[:3])
    try:
        port = int(port_s)
    except ValueError:
        port = -1
    if not 0 < port < 65536:
        raise ConfigError(f"invalid port {port_s!r} for {name!r}{where}")
    password = fields[3] if len(fields) == 4 and fields[3] != "" else None
    return ServerEntry(name, address, port, password)


def read_config(path: Union[str, Path, None] = None) -> List[ServerEntry]:
    p = config_path(path)
    if not p.exists():
        raise ConfigError(f"no configuration file at {p}")
    entries = []
    for n, line in enumerate(p.read_text(encoding="utf-8", errors="ignore").splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(parse_entry(line, n))
    return entries


def find_target(name: str, path: Union[str, Path, None] = None) -> ServerEntry:
    for entry in read_config(path):
        if entry.name == name:
            return entry
    raise ConfigError(f"no server named {name!r} in {config_path(path)}")


def resolve_password(entry: ServerEntry, override: Optional[str] = None) -> Optional[str]:
    """CLI option, then config file, then $RCON_PASSWORD; None means ask."""
    if override is not None:
        return override
    if entry.password is not None:
        return entry.password
    return os.environ.get("RCON_PASSWORD")
