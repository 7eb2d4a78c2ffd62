# gamelink/runtime/connection.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Set, Union

from gamelink.protocol import codec
from gamelink.protocol.errors import DecodeError
from gamelink.transport.base import Transport
from gamelink.transport.errors import TransportClosed, TransportError, TransportOpenError
from gamelink.runtime.events import EventDispatcher, EventKind, Handler
from gamelink.runtime.state import (
    ConnectionState,
    ConnectionStatus,
    InvalidTransition,
    can_transition,
)
from ._internal.workers import RxWorker, TxWorker

DEFAULT_ENDPOINT = "ws://localhost:8080/ws"

TransportFactory = Callable[[str], Transport]


class ConnectionManager:
    """
    Owns the single transport connection to the game server.

    Responsibilities:
      - open/close the transport and track ConnectionState
      - schedule reconnects after unexpected closure (never after disconnect())
      - pump inbound frames through the codec into the EventDispatcher
      - accept outbound frames only while OPEN, in FIFO order

    All methods must be called from the event loop that runs the manager. connect(),
    disconnect() and send_raw() never block; the actual I/O happens in loop tasks.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        *,
        transport_factory: TransportFactory,
        dispatcher: Optional[EventDispatcher] = None,
        reconnect_interval_s: float = 5.0,
        reconnect_backoff: float = 1.0,
        max_reconnect_interval_s: Optional[float] = None,
        max_reconnect_attempts: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if reconnect_interval_s < 0:
            raise ValueError("reconnect_interval_s must be >= 0")
        if reconnect_backoff < 1.0:
            raise ValueError("reconnect_backoff must be >= 1.0")
        if max_reconnect_attempts is not None and max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0 (or None for unbounded)")

        self._endpoint = endpoint
        self._transport_factory = transport_factory
        self._log = logger or logging.getLogger(__name__)
        self._dispatcher = dispatcher or EventDispatcher(logger=self._log)

        self.reconnect_interval_s = float(reconnect_interval_s)
        self.reconnect_backoff = float(reconnect_backoff)
        self.max_reconnect_interval_s = max_reconnect_interval_s
        self.max_reconnect_attempts = max_reconnect_attempts

        self._state = ConnectionState.IDLE
        self._transport: Optional[Transport] = None
        self._rx: Optional[RxWorker] = None
        self._tx: Optional[TxWorker] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._attempts = 0
        # bumped by every connect()/disconnect(); work tagged with an older value is stale
        self._generation = 0
        self._last_error: Optional[str] = None
        self._opened = asyncio.Event()
        self._closing: Set[asyncio.Task] = set()

    # ---------------- Introspection ----------------
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._state,
            endpoint=self._endpoint,
            reconnect_attempts=self._attempts,
            last_error=self._last_error,
        )

    # ---------------- Subscriptions ----------------
    def subscribe(self, kind: Union[EventKind, str], handler: Handler) -> Callable[[], None]:
        return self._dispatcher.subscribe(kind, handler)

    def unsubscribe(self, kind: Union[EventKind, str], handler: Handler) -> bool:
        return self._dispatcher.unsubscribe(kind, handler)

    # ---------------- Lifecycle ----------------
    def connect(self, endpoint: Optional[str] = None) -> None:
        """
        Start connecting unless already CONNECTING/OPEN.

        An explicit call also gives the reconnect policy a fresh attempt budget.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            self._log.debug("CONNECT_IGNORED state=%s", self._state.value)
            return
        self._attempts = 0
        self._begin_connect(endpoint)

    def _begin_connect(self, endpoint: Optional[str] = None) -> None:
        loop = asyncio.get_running_loop()

        if endpoint is not None:
            self._endpoint = endpoint

        self._cancel_reconnect_timer()
        self._release_transport()
        self._set_state(ConnectionState.CONNECTING)

        self._generation += 1
        self._connect_task = loop.create_task(self._open(self._generation), name="gamelink-connect")

    async def _open(self, generation: int) -> None:
        url = self._endpoint
        try:
            transport = self._transport_factory(url)
        except TransportError as e:
            self._log.error("TRANSPORT_CREATE_FAILED url=%s err=%s", url, e)
            self._on_transport_lost(generation, e)
            return

        self._transport = transport
        self._log.info("TRANSPORT_OPENING url=%s generation=%d", url, generation)

        try:
            await transport.open()
        except TransportError as e:
            self._log.warning("TRANSPORT_OPEN_FAILED url=%s err=%s", url, e)
            self._on_transport_lost(generation, e)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.exception("TRANSPORT_OPEN_ERROR url=%s", url)
            self._on_transport_lost(generation, TransportOpenError(str(e)))
            return

        if generation != self._generation or transport is not self._transport:
            # disconnect() (or a newer connect()) won the race
            self._spawn_close(transport)
            return

        self._set_state(ConnectionState.OPEN)
        self._attempts = 0
        self._last_error = None
        self._cancel_reconnect_timer()

        self._rx = RxWorker(self, transport, generation)
        self._tx = TxWorker(self, transport, generation)
        self._rx.start()
        self._tx.start()

        self._opened.set()
        self._log.info("CONNECTED url=%s", url)
        self._dispatcher.emit(EventKind.CONNECTED, True)

    def _on_transport_lost(self, generation: int, exc: TransportError) -> None:
        if generation != self._generation:
            return
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return

        was_open = self._state is ConnectionState.OPEN
        self._last_error = str(exc)
        self._release_transport()
        self._set_state(ConnectionState.CLOSED)
        self._opened.clear()
        self._log.warning("TRANSPORT_LOST url=%s was_open=%s err=%s", self._endpoint, was_open, exc)

        if not isinstance(exc, TransportClosed):
            self._dispatcher.emit(EventKind.ERROR, exc)
        self._dispatcher.emit(EventKind.CONNECTED, False)

        # a handler may already have called connect() or disconnect()
        if self._state is ConnectionState.CLOSED:
            self.schedule_reconnect()

    def schedule_reconnect(self) -> bool:
        """
        Arm the one-shot reconnect timer. Returns False when the bounded policy is
        exhausted (reconnectExhausted is emitted and the manager stays CLOSED).
        """
        if self._state is ConnectionState.RECONNECT_PENDING:
            # same attempt, fresh timer
            self._arm(self._delay_for(self._attempts - 1))
            return True

        if self._state is not ConnectionState.CLOSED:
            self._log.debug("RECONNECT_NOT_SCHEDULED state=%s", self._state.value)
            return False

        if self.max_reconnect_attempts is not None and self._attempts >= self.max_reconnect_attempts:
            self._log.warning("RECONNECT_EXHAUSTED attempts=%d url=%s", self._attempts, self._endpoint)
            self._dispatcher.emit(EventKind.RECONNECT_EXHAUSTED)
            return False

        delay_s = self._delay_for(self._attempts)
        self._attempts += 1
        self._set_state(ConnectionState.RECONNECT_PENDING)
        self._arm(delay_s)
        return True

    def _arm(self, delay_s: float) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_reconnect_timer()
        self._reconnect_handle = loop.call_later(delay_s, self._on_reconnect_timer)
        self._log.info("RECONNECT_SCHEDULED attempt=%d delay_s=%.3f url=%s", self._attempts, delay_s, self._endpoint)

    def _delay_for(self, attempt_index: int) -> float:
        delay_s = self.reconnect_interval_s * (self.reconnect_backoff ** max(0, attempt_index))
        if self.max_reconnect_interval_s is not None:
            delay_s = min(delay_s, float(self.max_reconnect_interval_s))
        return delay_s

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._state is not ConnectionState.RECONNECT_PENDING:
            return
        self._log.info("RECONNECT_ATTEMPT attempt=%d url=%s", self._attempts, self._endpoint)
        self._begin_connect()

    def disconnect(self) -> None:
        """
        Close the connection and stay IDLE. Cancels any pending reconnect and any
        in-flight open attempt. Idempotent.
        """
        self._cancel_reconnect_timer()
        self._generation += 1

        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        self._release_transport()
        self._opened.clear()

        previous = self._state
        if previous is ConnectionState.IDLE:
            return

        self._set_state(ConnectionState.IDLE)
        self._log.info("DISCONNECTED url=%s previous_state=%s", self._endpoint, previous.value)
        if previous is ConnectionState.OPEN:
            self._dispatcher.emit(EventKind.CONNECTED, False)

    async def wait_open(self, timeout: Optional[float] = None) -> bool:
        if self._state is ConnectionState.OPEN:
            return True
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return self._state is ConnectionState.OPEN

    async def aclose(self) -> None:
        """disconnect() and wait for the transport close to finish."""
        self.disconnect()
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    async def __aenter__(self) -> "ConnectionManager":
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ---------------- Data path ----------------
    def send_raw(self, frame: str) -> bool:
        """Queue one text frame. Dropped (with a warning) unless OPEN."""
        if self._state is not ConnectionState.OPEN or self._tx is None:
            self._log.warning("SEND_DROPPED state=%s len=%d", self._state.value, len(frame))
            return False
        return self._tx.submit(frame)

    def _on_frame(self, text: str) -> None:
        try:
            frame = codec.decode(text)
        except DecodeError as e:
            self._log.warning("FRAME_DROPPED reason=%s len=%d", e.reason, len(text))
            return

        if frame.kind is codec.FrameKind.SNAPSHOT:
            self._dispatcher.emit_snapshot(frame.snapshot)
        else:
            self._dispatcher.emit(EventKind.MESSAGE, frame.message)

    # ---------------- Internals ----------------
    def _set_state(self, new: ConnectionState) -> None:
        if not can_transition(self._state, new):
            raise InvalidTransition(self._state, new)
        self._log.debug("STATE %s -> %s", self._state.value, new.value)
        self._state = new

    def _cancel_reconnect_timer(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()

    def _release_transport(self) -> None:
        for worker in (self._rx, self._tx):
            if worker is not None:
                worker.stop()
        self._rx = None
        self._tx = None

        transport, self._transport = self._transport, None
        if transport is not None:
            self._spawn_close(transport)

    def _spawn_close(self, transport: Transport) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._log.warning("TRANSPORT_CLOSE_SKIPPED reason=no_running_loop")
            return
        task = loop.create_task(self._close_transport(transport), name="gamelink-close")
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await transport.close()
        except Exception:
            self._log.exception("Failed to close transport")
