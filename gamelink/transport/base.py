from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """
    Abstract message transport (WebSocket, in-memory fakes, etc.).

    Contract:
      - open()/close() manage the underlying connection.
      - recv() waits for the next whole text message. It raises TransportClosed once
        the connection is gone; it never returns partial frames.
      - send(text) transmits one whole text message.
      - is_open() reports whether send()/recv() can currently succeed.
    """

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def recv(self) -> str: ...

    @abstractmethod
    async def send(self, text: str) -> None: ...

    @abstractmethod
    def is_open(self) -> bool: ...

    async def __aenter__(self) -> "Transport":
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()
