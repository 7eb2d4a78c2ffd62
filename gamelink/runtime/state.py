# gamelink/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECT_PENDING = "reconnect_pending"


_S = ConnectionState

TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    _S.IDLE: frozenset({_S.CONNECTING}),
    _S.CONNECTING: frozenset({_S.OPEN, _S.CLOSED, _S.IDLE}),
    _S.OPEN: frozenset({_S.CLOSED, _S.IDLE}),
    _S.CLOSED: frozenset({_S.RECONNECT_PENDING, _S.CONNECTING, _S.IDLE}),
    _S.RECONNECT_PENDING: frozenset({_S.CONNECTING, _S.IDLE}),
}


class InvalidTransition(RuntimeError):
    def __init__(self, src: ConnectionState, dst: ConnectionState):
        super().__init__(f"invalid connection state transition {src.value} -> {dst.value}")
        self.src = src
        self.dst = dst


def can_transition(src: ConnectionState, dst: ConnectionState) -> bool:
    return dst in TRANSITIONS[src]


@dataclass(frozen=True)
class ConnectionStatus:
    """
    A snapshot of the connection manager, safe to hand to UI code.
    """
    state: ConnectionState
    endpoint: str
    reconnect_attempts: int = 0
    last_error: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.OPEN
