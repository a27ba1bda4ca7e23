# rcon_cli/rcon_ui.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from prompt_toolkit import prompt
from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from .errors import RconError
from .rcon import RconClient

logger = logging.getLogger(__name__)

LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area


def ask_password(text: str = "Enter password: ") -> str:
    """Read the RCON password without echoing it."""
    return prompt(text, is_password=True)


async def run_rcon_ui(client: RconClient, title: str) -> None:
    """Fullscreen RCON console: output pane + an input bar, one session."""
    log = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,  # programmatic inserts
    )
    input_field = TextArea(height=1, prompt="> ", multiline=False)
    status = Label(
        text=f"RCON - {title} {client.host}:{client.port}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()
    busy = asyncio.Lock()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        input_field.buffer.document = Document(text="")
        if cmd:
            await _run_command(app, log, client, cmd, busy)

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    root = HSplit([status, log, input_field])
    app = Application(
        layout=Layout(root),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    async def rcon_open() -> None:
        try:
            await asyncio.to_thread(client.open)
            _append(app, log, f"[rcon] connected to {client.host}:{client.port}\n")
        except RconError as e:
            _append(
                app,
                log,
                f"[rcon] cannot connect: {e}\n"
                "[hint] Check the address, port and password for this target.\n",
            )

    open_task = asyncio.create_task(rcon_open())
    try:
        await app.run_async()
    finally:
        await open_task
        client.close()


async def _run_command(app: Optional[Application], log: TextArea, client: RconClient,
                       cmd: str, busy: asyncio.Lock) -> None:
    """Run one console command; commands typed while one is running wait their turn."""
    async with busy:
        if not client.authenticated:
            _append(app, log, "[rcon] not connected\n")
            return
        try:
            out = await asyncio.to_thread(client.command, cmd)
            _append(app, log, f"$ {cmd}\n{out}\n")
        except RconError as e:
            _append(app, log, f"[rcon error] {e}\n")


def run_plain_console(client: RconClient) -> None:
    """Line-by-line console on stdin/stdout."""
    client.open()
    print("Interactive RCON. Type /quit to exit.")
    try:
        while True:
            try:
                cmd = input("> ").strip()
            except EOFError:
                break
            if cmd.lower() in ("/quit", "quit", "exit"):
                break
            if not cmd:
                continue
            try:
                print(client.command(cmd))
            except RconError as e:
                print(f"[rcon error] {e}")
    finally:
        client.close()


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
