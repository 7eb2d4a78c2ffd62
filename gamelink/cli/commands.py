# gamelink/cli/commands.py
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

from gamelink.app.client import GameClient
from gamelink.app.config import GameLinkConfig
from gamelink.app.runner import build_client
from gamelink.core.errors import ConnectError
from gamelink.protocol.messages import ControlKey, Snapshot
from gamelink.runtime.events import EventKind

ReadLine = Callable[[], Awaitable[str]]


KEY_ALIASES = {
    "w": ControlKey.ARROW_UP,
    "up": ControlKey.ARROW_UP,
    "s": ControlKey.ARROW_DOWN,
    "down": ControlKey.ARROW_DOWN,
    "a": ControlKey.ARROW_LEFT,
    "left": ControlKey.ARROW_LEFT,
    "d": ControlKey.ARROW_RIGHT,
    "right": ControlKey.ARROW_RIGHT,
    "start": ControlKey.START,
    "space": ControlKey.START,
    "r": ControlKey.RESTART,
    "restart": ControlKey.RESTART,
    "q": ControlKey.QUIT,
    "quit": ControlKey.QUIT,
}

EXIT_WORDS = ("exit", "bye")


def parse_key(line: str) -> Optional[ControlKey]:
    word = line.strip().lower()
    if word in KEY_ALIASES:
        return KEY_ALIASES[word]
    # raw tokens ("ArrowUp", "r", ...) are accepted as-is
    return ControlKey.parse(line.strip())


# ---------------- Logging ----------------

def configure_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """
    Stream handler on stderr plus an optional file handler (both idempotent).
    Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    root.setLevel(getattr(logging, level))

    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        sh = logging.StreamHandler(sys.stderr)
        sh.setFormatter(fmt)
        root.addHandler(sh)

    if log_file is None:
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    target = str(log_file.resolve())
    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(log_file, encoding="utf-8", delay=True)
    fh.setFormatter(fmt)
    root.addHandler(fh)


# ---------------- Event printing ----------------

def format_snapshot(snapshot: Snapshot) -> str:
    head = snapshot.head
    head_s = f"({head.x},{head.y})" if head else "-"
    food_s = f"({snapshot.food.x},{snapshot.food.y})" if snapshot.food else "-"
    out = (
        f"STATE len={len(snapshot.snake)} head={head_s} food={food_s} "
        f"started={snapshot.game_started} over={snapshot.game_over} won={snapshot.game_won}"
    )
    if "score" in snapshot.extra:
        out += f" score={snapshot.extra['score']}"
    return out


class PrintEventSink:
    """Print client events to stdout."""

    def __init__(self, *, show_states: bool = True, out=None):
        self._show_states = show_states
        self._out = out or sys.stdout
        self._unsubscribers: list[Callable[[], None]] = []

    def attach(self, client: GameClient) -> None:
        handlers = {
            EventKind.CONNECTED: self.on_connected,
            EventKind.GAME_STATE: self.on_game_state,
            EventKind.GAME_STARTED: self.on_game_started,
            EventKind.GAME_OVER: self.on_game_over,
            EventKind.ERROR: self.on_error,
            EventKind.RECONNECT_EXHAUSTED: self.on_reconnect_exhausted,
            EventKind.MESSAGE: self.on_message,
        }
        for kind, handler in handlers.items():
            self._unsubscribers.append(client.subscribe(kind, handler))

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _print(self, line: str) -> None:
        print(line, file=self._out, flush=True)

    def on_connected(self, connected: bool) -> None:
        self._print("CONNECTED" if connected else "DISCONNECTED (reconnecting...)")

    def on_game_state(self, snapshot: Snapshot) -> None:
        if self._show_states:
            self._print(format_snapshot(snapshot))

    def on_game_started(self, snapshot: Snapshot) -> None:
        return None

    def on_game_over(self, snapshot: Snapshot) -> None:
        self._print("GAME WON" if snapshot.game_won else "GAME OVER")

    def on_error(self, cause: BaseException) -> None:
        self._print(f"ERROR {cause}")

    def on_reconnect_exhausted(self) -> None:
        self._print("OFFLINE: giving up on reconnecting")

    def on_message(self, payload: dict) -> None:
        self._print(f"MESSAGE {payload}")


# ---------------- Commands ----------------

async def _wait_connected(client: GameClient, timeout_s: float) -> None:
    client.connect()
    if not await client.wait_open(timeout_s):
        st = client.status()
        raise ConnectError(
            f"Could not connect to {st.endpoint} within {timeout_s:g}s.",
            hint=st.last_error or "Is the game server running?",
            details={"endpoint": st.endpoint, "state": st.state.value},
        )


async def run_watch(client: GameClient, *, secs: Optional[float], connect_timeout_s: float) -> int:
    sink = PrintEventSink()
    sink.attach(client)
    try:
        await _wait_connected(client, connect_timeout_s)
        if secs is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(secs)
        return 0
    finally:
        sink.close()
        await client.aclose()


async def _stdin_readline() -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, sys.stdin.readline)


async def run_play(
    client: GameClient,
    cfg: GameLinkConfig,
    *,
    connect_timeout_s: float,
    read_line: ReadLine = _stdin_readline,
) -> int:
    sink = PrintEventSink()
    sink.attach(client)
    try:
        await _wait_connected(client, connect_timeout_s)
        await client.send_config(cfg.session)
        client.start()
        print("Keys: w/a/s/d or up/down/left/right, start, r (restart), q (quit game), exit")

        while True:
            line = await read_line()
            if line == "":
                break  # EOF
            word = line.strip()
            if not word:
                continue
            if word.lower() in EXIT_WORDS:
                break

            key = parse_key(word)
            if key is None:
                print(f"Unknown key: {word!r}")
                continue
            if not client.send_input(key):
                print("Not connected; key dropped.")
        return 0
    finally:
        sink.close()
        await client.aclose()


def cmd_watch(cfg: GameLinkConfig, *, secs: Optional[float], connect_timeout_s: float) -> int:
    async def _main() -> int:
        return await run_watch(build_client(cfg), secs=secs, connect_timeout_s=connect_timeout_s)

    return asyncio.run(_main())


def cmd_play(cfg: GameLinkConfig, *, connect_timeout_s: float) -> int:
    async def _main() -> int:
        return await run_play(build_client(cfg), cfg, connect_timeout_s=connect_timeout_s)

    return asyncio.run(_main())
