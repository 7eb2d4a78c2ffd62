# gamelink/runtime/config_delivery.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, TYPE_CHECKING

from gamelink.core.errors import ConfigDeliveryError
from gamelink.protocol import codec
from gamelink.protocol.messages import SessionConfig
from gamelink.runtime.state import ConnectionState

if TYPE_CHECKING:
    from gamelink.runtime.connection import ConnectionManager

DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY_S = 0.05


async def deliver_config(
    manager: "ConnectionManager",
    config: SessionConfig,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    delay_s: float = DEFAULT_DELAY_S,
    logger: Optional[logging.Logger] = None,
) -> int:
    """
    Send the session config, retrying while the connection is not open yet.

    The UI typically asks for this right after connect(), before the socket is up.
    The first try is immediate, then up to `attempts` retries follow `delay_s` apart,
    so the connection has `attempts * delay_s` to open. Returns the 1-based try that
    succeeded (1 = immediate). Raises ConfigDeliveryError once every try found the
    connection closed. Cancelling the awaiting task stops the retries.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    log = logger or logging.getLogger(__name__)
    frame = codec.encode(config)

    for attempt in range(1, attempts + 2):
        if manager.state is ConnectionState.OPEN and manager.send_raw(frame):
            log.info("CONFIG_DELIVERED attempt=%d", attempt)
            return attempt

        log.debug("CONFIG_NOT_SENT attempt=%d state=%s", attempt, manager.state.value)
        if attempt <= attempts:
            await asyncio.sleep(delay_s)

    log.warning("CONFIG_DELIVERY_FAILED attempts=%d state=%s", attempts, manager.state.value)
    raise ConfigDeliveryError(
        "Session config was not delivered: connection never opened.",
        hint=f"Gave up after {attempts} retries {delay_s}s apart; send it again once connected.",
        details={
            "attempts": attempts,
            "delay_s": delay_s,
            "state": manager.state.value,
            "endpoint": manager.endpoint,
        },
    )
