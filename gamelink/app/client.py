# gamelink/app/client.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from gamelink.protocol import codec
from gamelink.protocol.messages import ControlKey, SessionConfig
from gamelink.runtime.config_delivery import DEFAULT_ATTEMPTS, DEFAULT_DELAY_S, deliver_config
from gamelink.runtime.connection import ConnectionManager
from gamelink.runtime.events import EventKind, Handler
from gamelink.runtime.state import ConnectionState, ConnectionStatus


class GameClient:
    """
    UI-facing API over ConnectionManager.

    Key commands are fire-and-forget: they return True when the frame was queued and
    False when it was dropped (not connected, or not a known key). quit() ends the
    game session on the server; it does not close the connection.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        *,
        config_attempts: int = DEFAULT_ATTEMPTS,
        config_retry_delay_s: float = DEFAULT_DELAY_S,
        logger: Optional[logging.Logger] = None,
    ):
        self._manager = manager
        self._config_attempts = int(config_attempts)
        self._config_retry_delay_s = float(config_retry_delay_s)
        self._log = logger or logging.getLogger(__name__)

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def state(self) -> ConnectionState:
        return self._manager.state

    def status(self) -> ConnectionStatus:
        return self._manager.status()

    # connection passthrough
    def connect(self, endpoint: Optional[str] = None) -> None:
        self._manager.connect(endpoint)

    def disconnect(self) -> None:
        self._manager.disconnect()

    async def wait_open(self, timeout: Optional[float] = None) -> bool:
        return await self._manager.wait_open(timeout)

    async def aclose(self) -> None:
        await self._manager.aclose()

    async def __aenter__(self) -> "GameClient":
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def subscribe(self, kind: Union[EventKind, str], handler: Handler) -> Callable[[], None]:
        return self._manager.subscribe(kind, handler)

    def unsubscribe(self, kind: Union[EventKind, str], handler: Handler) -> bool:
        return self._manager.unsubscribe(kind, handler)

    # game commands
    def _send_key(self, key: ControlKey) -> bool:
        return self._manager.send_raw(codec.encode(key))

    def start(self) -> bool:
        return self._send_key(ControlKey.START)

    def send_input(self, token: Union[ControlKey, str]) -> bool:
        key = ControlKey.parse(token)
        if key is None:
            self._log.warning("UNKNOWN_KEY_DROPPED token=%r", token)
            return False
        return self._send_key(key)

    def restart(self) -> bool:
        return self._send_key(ControlKey.RESTART)

    def quit(self) -> bool:
        return self._send_key(ControlKey.QUIT)

    async def send_config(self, config: SessionConfig) -> int:
        """
        Deliver the one-time session config, waiting briefly for the connection.

        Raises ConfigDeliveryError if the connection does not open in time.
        """
        return await deliver_config(
            self._manager,
            config,
            attempts=self._config_attempts,
            delay_s=self._config_retry_delay_s,
            logger=self._log,
        )
