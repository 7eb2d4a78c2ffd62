from __future__ import annotations

from typing import Any, Callable, Dict, Type
from urllib.parse import urlsplit

from .base import Transport
from .websocket import WebSocketTransport
from .errors import TransportError


class TransportDriverRegistry:
    """
    Maps endpoint URL schemes -> concrete transport classes.

    Every registered class is constructed as ``cls(url, **params)``.
    """

    def __init__(self, drivers: Dict[str, Type[Transport]]):
        # normalize keys to be case-insensitive
        self._drivers: Dict[str, Type[Transport]] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "TransportDriverRegistry":
        return cls(
            drivers={
                "ws": WebSocketTransport,
                "wss": WebSocketTransport,
            }
        )

    def has(self, scheme: str) -> bool:
        return scheme.lower() in self._drivers

    def get_class(self, scheme: str) -> Type[Transport]:
        key = scheme.lower()
        if key not in self._drivers:
            raise TransportError(f"No transport registered for scheme '{scheme}'")
        return self._drivers[key]

    def create(self, url: str, **params: Any) -> Transport:
        """
        Instantiate a transport for `url`, picked by its scheme.
        """
        scheme = urlsplit(url).scheme
        if not scheme:
            raise TransportError(f"Endpoint '{url}' has no scheme (expected e.g. ws://host:port/path)")
        transport_cls = self.get_class(scheme)
        return transport_cls(url, **params)

    def factory(self, **params: Any) -> Callable[[str], Transport]:
        """
        Bind constructor params once; the connection manager only passes the URL.
        """
        def _create(url: str) -> Transport:
            return self.create(url, **params)

        return _create
