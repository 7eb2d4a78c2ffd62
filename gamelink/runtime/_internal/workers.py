# gamelink/runtime/_internal/workers.py
from __future__ import annotations

import asyncio
from typing import Optional, TYPE_CHECKING

from gamelink.transport.base import Transport
from gamelink.transport.errors import TransportError, TransportIOError

if TYPE_CHECKING:
    from gamelink.runtime.connection import ConnectionManager


class _Worker:
    """asyncio task bound to one transport handle and one connection generation."""

    name = "worker"

    def __init__(self, manager: "ConnectionManager", transport: Transport, generation: int):
        self.manager = manager
        self.transport = transport
        self.generation = generation
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run(), name=f"gamelink-{self.name}")

    def is_alive(self) -> bool:
        return self._task is not None and not self._task.done()

    def stop(self) -> None:
        # a worker reporting its own transport loss must not cancel itself mid-report
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    async def join(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def run(self) -> None:
        raise NotImplementedError

    def _lost(self, exc: TransportError) -> None:
        self.manager._on_transport_lost(self.generation, exc)


class RxWorker(_Worker):
    """Reads frames from the transport and hands them to the manager, in order."""

    name = "rx"

    async def run(self) -> None:
        while True:
            try:
                text = await self.transport.recv()
            except TransportError as e:
                self._lost(e)
                return
            except Exception as e:
                self.manager._log.exception("RX_WORKER_EXCEPTION generation=%d", self.generation)
                self._lost(TransportIOError(f"receive failed: {e}"))
                return

            try:
                self.manager._on_frame(text)
            except Exception:
                # frame handling errors never end the loop
                self.manager._log.exception("RX_FRAME_HANDLER_ERROR generation=%d len=%d", self.generation, len(text))


class TxWorker(_Worker):
    """Drains the outbound FIFO onto the transport."""

    name = "tx"

    def __init__(self, manager: "ConnectionManager", transport: Transport, generation: int, *, maxsize: int = 256):
        super().__init__(manager, transport, generation)
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=maxsize)

    def submit(self, text: str) -> bool:
        try:
            self._queue.put_nowait(text)
        except asyncio.QueueFull:
            self.manager._log.warning("TX_QUEUE_FULL dropped_len=%d", len(text))
            return False
        return True

    def pending(self) -> int:
        return self._queue.qsize()

    async def run(self) -> None:
        while True:
            text = await self._queue.get()
            try:
                await self.transport.send(text)
            except TransportError as e:
                self._lost(e)
                return
            except Exception as e:
                self.manager._log.exception("TX_WORKER_EXCEPTION generation=%d", self.generation)
                self._lost(TransportIOError(f"send failed: {e}"))
                return
            self.manager._log.debug("FRAME_SENT len=%d", len(text))
