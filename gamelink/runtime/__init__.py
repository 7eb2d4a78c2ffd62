# runtime/__init__.py

from .state import ConnectionState, ConnectionStatus, TRANSITIONS
from .events import EventKind, EventDispatcher, derive_events
from .connection import ConnectionManager, DEFAULT_ENDPOINT
from .config_delivery import deliver_config

__all__ = [
    "ConnectionState", "ConnectionStatus", "TRANSITIONS",
    "EventKind", "EventDispatcher", "derive_events",
    "ConnectionManager", "DEFAULT_ENDPOINT",
    "deliver_config",
]
