# gamelink/transport/websocket.py
from __future__ import annotations

import asyncio
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .base import Transport
from .errors import TransportClosed, TransportIOError, TransportOpenError


class WebSocketTransport(Transport):
    """
    WebSocket transport implemented via the `websockets` library.

    One WebSocket text message carries exactly one logical frame. Binary messages are
    decoded as strict UTF-8 so the codec only ever sees text; an undecodable one raises
    TransportIOError and the handle stays set so close() still shuts the socket.
    """

    def __init__(
        self,
        url: str,
        *,
        open_timeout: float = 10.0,
        close_timeout: float = 5.0,
        max_size: int = 1 << 20,
    ):
        self.url = url
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout
        self.max_size = max_size
        self.ws: Optional[Any] = None

    async def open(self) -> None:
        try:
            self.ws = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                close_timeout=self.close_timeout,
                max_size=self.max_size,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.ws = None
            raise TransportOpenError(f"{self.url}: {e or type(e).__name__}") from None

    async def close(self) -> None:
        if self.ws is not None:
            try:
                await self.ws.close()
            finally:
                self.ws = None

    def is_open(self) -> bool:
        return self.ws is not None

    async def recv(self) -> str:
        if self.ws is None:
            raise TransportIOError("recv while transport not open")

        try:
            msg = await self.ws.recv()
        except ConnectionClosed as e:
            self.ws = None
            raise TransportClosed(f"WebSocket closed: {e}") from None
        except (OSError, WebSocketException) as e:
            self.ws = None
            raise TransportIOError(f"WebSocket recv failed: {e}") from None

        if isinstance(msg, (bytes, bytearray)):
            try:
                return bytes(msg).decode("utf-8")
            except UnicodeDecodeError as e:
                raise TransportIOError(f"WebSocket binary frame is not valid UTF-8: {e}") from None
        return msg

    async def send(self, text: str) -> None:
        if self.ws is None:
            raise TransportIOError("send while transport not open")

        try:
            await self.ws.send(text)
        except ConnectionClosed as e:
            self.ws = None
            raise TransportClosed(f"WebSocket closed: {e}") from None
        except (OSError, WebSocketException) as e:
            self.ws = None
            raise TransportIOError(f"WebSocket send failed: {e}") from None
