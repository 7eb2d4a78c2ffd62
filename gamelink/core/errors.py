# gamelink/core/errors.py
from __future__ import annotations


class GameLinkError(Exception):
    """
    Base class for all expected operational errors in gamelink.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, UI messages, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no connection attempted yet)
# ---------------------------------------------------------------------------

class ConfigError(GameLinkError):
    """
    Client configuration is invalid.

    Examples:
      - config file missing or not valid YAML
      - unknown keys
      - wrong value types / out-of-range session settings
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Connection errors
# ---------------------------------------------------------------------------

class ConnectError(GameLinkError):
    """
    The game server could not be reached within the time the caller allowed.

    The connection manager itself keeps retrying; this is raised only by callers
    that wait for the link (e.g. the CLI).
    """
    code = "connect_error"


class ConfigDeliveryError(GameLinkError):
    """
    The session configuration could not be sent because the connection never
    became open within the bounded number of attempts.

    Recoverable: the caller may try again once connected.
    """
    code = "config_delivery_failed"
