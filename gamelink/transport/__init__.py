# transport/__init__.py

from .base import Transport
from .errors import TransportError, TransportOpenError, TransportIOError, TransportClosed
from .registry import TransportDriverRegistry
from .websocket import WebSocketTransport

__all__ = [
    "Transport",
    "TransportError", "TransportOpenError", "TransportIOError", "TransportClosed",
    "TransportDriverRegistry",
    "WebSocketTransport",
]
