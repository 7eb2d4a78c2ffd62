from __future__ import annotations

import asyncio
from typing import Any, List, Optional

from gamelink.transport.base import Transport
from gamelink.transport.errors import TransportClosed, TransportIOError, TransportOpenError

_EOF = object()


class FakeTransport(Transport):
    """In-memory transport driven by the test through its FakeNetwork."""

    def __init__(self, url: str, net: "FakeNetwork"):
        self.url = url
        self.net = net
        self.sent: List[str] = []
        self.open_calls = 0
        self.close_calls = 0
        self.raise_on_send: Optional[Exception] = None
        self._open = False
        self._inbox: "asyncio.Queue[Any]" = asyncio.Queue()

    async def open(self) -> None:
        self.open_calls += 1
        if self.net.open_gate is not None:
            await self.net.open_gate.wait()
        if self.net.fail_open:
            raise TransportOpenError("connection refused")
        self._open = True

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False
        self._inbox.put_nowait(_EOF)

    def is_open(self) -> bool:
        return self._open

    async def recv(self) -> str:
        item = await self._inbox.get()
        if item is _EOF:
            raise TransportClosed("closed")
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, text: str) -> None:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        if not self._open:
            raise TransportIOError("send while transport not open")
        self.sent.append(text)

    # ---- test helpers ----
    def feed(self, text: str) -> None:
        self._inbox.put_nowait(text)

    def drop(self, exc: Optional[BaseException] = None) -> None:
        """Simulate the peer going away."""
        self._open = False
        self._inbox.put_nowait(exc if exc is not None else _EOF)


class FakeNetwork:
    """Transport factory that records every transport the manager creates."""

    def __init__(self) -> None:
        self.transports: List[FakeTransport] = []
        self.fail_open = False
        self.open_gate: Optional[asyncio.Event] = None

    def factory(self, url: str) -> FakeTransport:
        t = FakeTransport(url, self)
        self.transports.append(t)
        return t

    @property
    def last(self) -> FakeTransport:
        return self.transports[-1]


class EventRecorder:
    """Subscribes to every event kind and records (kind, args) in order."""

    def __init__(self, target) -> None:
        from gamelink.runtime.events import EventKind

        self.events: List[tuple] = []
        for kind in EventKind:
            target.subscribe(kind, self._make(kind))

    def _make(self, kind):
        def _handler(*args):
            self.events.append((kind, args))
        return _handler

    def kinds(self) -> list:
        return [k for k, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


async def settle(rounds: int = 10) -> None:
    """Let pending loop tasks/callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
