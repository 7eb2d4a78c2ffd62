# gamelink/runtime/events.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from gamelink.protocol.messages import Snapshot

Handler = Callable[..., Any]


class EventKind(str, Enum):
    CONNECTED = "connected"                      # (connected: bool)
    GAME_STATE = "gameState"                     # (snapshot: Snapshot)
    GAME_STARTED = "gameStarted"                 # (snapshot: Snapshot)
    GAME_OVER = "gameOver"                       # (snapshot: Snapshot)
    ERROR = "error"                              # (cause: BaseException)
    RECONNECT_EXHAUSTED = "reconnectExhausted"   # ()
    MESSAGE = "message"                          # (payload: dict), non-snapshot frames


def derive_events(snapshot: Snapshot) -> List[Tuple[EventKind, Snapshot]]:
    """
    Events produced by one snapshot, in emission order.

    gameState is always first. gameStarted and gameOver cannot both appear: a
    snapshot that is over is never reported as freshly started. gameWon is only
    visible inside the payload.
    """
    out = [(EventKind.GAME_STATE, snapshot)]
    if snapshot.game_over:
        out.append((EventKind.GAME_OVER, snapshot))
    elif snapshot.game_started:
        out.append((EventKind.GAME_STARTED, snapshot))
    return out


class EventDispatcher:
    """
    Ordered publish/subscribe registry keyed by EventKind.

    Handlers run in subscription order. A failing handler is logged and skipped;
    the remaining handlers still get the event.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._handlers: Dict[EventKind, List[Handler]] = {kind: [] for kind in EventKind}

    def subscribe(self, kind: Union[EventKind, str], handler: Handler) -> Callable[[], None]:
        ek = EventKind(kind)
        self._handlers[ek].append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(ek, handler)

        return _unsubscribe

    def unsubscribe(self, kind: Union[EventKind, str], handler: Handler) -> bool:
        handlers = self._handlers[EventKind(kind)]
        for i, h in enumerate(handlers):
            if h is handler:
                del handlers[i]
                return True
        return False

    def handlers(self, kind: Union[EventKind, str]) -> List[Handler]:
        return list(self._handlers[EventKind(kind)])

    def emit(self, kind: EventKind, *args: Any) -> int:
        """Deliver to every handler of `kind`; returns how many ran without error."""
        delivered = 0
        for handler in list(self._handlers[kind]):
            try:
                handler(*args)
            except Exception:
                self._log.exception("EVENT_HANDLER_ERROR kind=%s handler=%r", kind.value, handler)
            else:
                delivered += 1
        return delivered

    def emit_snapshot(self, snapshot: Snapshot) -> None:
        for kind, payload in derive_events(snapshot):
            self.emit(kind, payload)
