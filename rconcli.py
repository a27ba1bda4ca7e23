#!/usr/bin/env python3
from __future__ import annotations
import argparse, asyncio, logging, sys
from typing import Optional
from rcon_cli.connection import DEFAULT_TIMEOUT
from rcon_cli.errors import ConfigError, RconError
from rcon_cli.rcon import RconClient, run
from rcon_cli.util import ServerEntry, config_path, find_target, read_config, resolve_password

# --- target helpers ----------------------------------------------------------

def _target(args) -> ServerEntry:
    """A config entry, or an ad-hoc one when the target is '-'."""
    if args.target == "-":
        if not args.host or not args.port:
            raise ConfigError("target '-' needs --host and --port")
        return ServerEntry("-", args.host, args.port)
    entry = find_target(args.target, args.config)
    if args.host or args.port:
        entry = ServerEntry(entry.name, args.host or entry.address, args.port or entry.port, entry.password)
    return entry

def _ask_password() -> str:
    from rcon_cli.rcon_ui import ask_password
    return ask_password()

# --- list / exec / console ---------------------------------------------------

def do_list(args):
    entries = read_config(args.config)
    if not entries:
        print(f"No servers in {config_path(args.config)}", flush=True)
        return 0
    for e in entries:
        print(f"{'*' if e.password is not None else ' '} {e}")
    return 0

def do_exec(args):
    entry = _target(args)
    out = run(entry.address, entry.port, resolve_password(entry, args.password),
              " ".join(args.command), timeout=args.timeout, sentinel=args.sentinel,
              ask_password=_ask_password)
    print(out)
    return 0

def do_console(args):
    """Opens the prompt_toolkit RCON console, or a plain input() loop with --plain."""
    from rcon_cli.rcon_ui import run_plain_console, run_rcon_ui
    entry = _target(args)
    password = resolve_password(entry, args.password)
    if password is None:
        password = _ask_password()
    client = RconClient(entry.address, entry.port, password,
                        timeout=args.timeout, sentinel=args.sentinel)
    if args.plain:
        run_plain_console(client)
        return 0
    try:
        asyncio.run(run_rcon_ui(client, entry.name))
    except KeyboardInterrupt:
        pass
    return 0

# --- argparse ----------------------------------------------------------------

def _add_target_args(p):
    p.add_argument("target", help="Server name from the config file, or '-' with --host/--port")
    p.add_argument("--host")
    p.add_argument("--port", type=int)
    p.add_argument("--password", help="Overrides the config file and $RCON_PASSWORD")
    p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                   help="Receive timeout in seconds (default: %(default)s)")
    p.add_argument("--sentinel", action="store_true",
                   help="End responses on an echoed empty command instead of a timeout")

def build_parser():
    p = argparse.ArgumentParser(prog="rconcli.py", description="Source RCON client.")
    p.add_argument("--config", help="Config file (default: $RCON_CONFIG or ~/.config/rcon/rcon.conf)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("list", help="List configured servers").set_defaults(func=do_list)

    pe = sub.add_parser("exec", help="Run one command and print its output")
    _add_target_args(pe)
    pe.add_argument("command", nargs="+")
    pe.set_defaults(func=do_exec)

    pc = sub.add_parser("console", help="Open an interactive RCON console (prompt_toolkit)")
    _add_target_args(pc)
    pc.add_argument("--plain", action="store_true", help="Plain line-by-line console")
    pc.set_defaults(func=do_console)

    return p

def main(argv: Optional[list] = None):
    argv = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except RconError as e:
        print(f"rconcli: {e}", file=sys.stderr)
        return e.errno

if __name__ == "__main__":
    raise SystemExit(main())
