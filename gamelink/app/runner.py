# gamelink/app/runner.py
from __future__ import annotations

import logging
from typing import Optional

from gamelink.app.client import GameClient
from gamelink.app.config import GameLinkConfig
from gamelink.core.errors import ConfigError
from gamelink.runtime.connection import ConnectionManager, TransportFactory
from gamelink.runtime.events import EventDispatcher
from gamelink.transport.registry import TransportDriverRegistry


def build_client(
    cfg: GameLinkConfig,
    *,
    drivers: Optional[TransportDriverRegistry] = None,
    transport_factory: Optional[TransportFactory] = None,
    logger: Optional[logging.Logger] = None,
) -> GameClient:
    """
    Composition root: wire dispatcher, connection manager and command API.

    `drivers` / `transport_factory` are injectable to support testing and custom
    transports. By default WebSocket transports are built from the endpoint scheme.
    """
    log = logger or logging.getLogger("gamelink")

    if transport_factory is None:
        drivers = drivers or TransportDriverRegistry.default()
        transport_factory = drivers.factory(
            open_timeout=cfg.open_timeout_s,
            close_timeout=cfg.close_timeout_s,
        )

    try:
        manager = ConnectionManager(
            cfg.endpoint,
            transport_factory=transport_factory,
            dispatcher=EventDispatcher(logger=log),
            reconnect_interval_s=cfg.reconnect_interval_s,
            reconnect_backoff=cfg.reconnect_backoff,
            max_reconnect_interval_s=cfg.max_reconnect_interval_s,
            max_reconnect_attempts=cfg.max_reconnect_attempts,
            logger=log,
        )
    except ValueError as e:
        raise ConfigError("Invalid reconnect settings.", hint=str(e), details={"endpoint": cfg.endpoint}) from None

    return GameClient(
        manager,
        config_attempts=cfg.config_attempts,
        config_retry_delay_s=cfg.config_retry_delay_s,
        logger=log,
    )
