# gamelink/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gamelink.core.errors import ConfigError
from gamelink.protocol.messages import SessionConfig
from gamelink.runtime.config_delivery import DEFAULT_ATTEMPTS, DEFAULT_DELAY_S
from gamelink.runtime.connection import DEFAULT_ENDPOINT


@dataclass(frozen=True)
class GameLinkConfig:
    endpoint: str = DEFAULT_ENDPOINT
    reconnect_interval_s: float = 5.0
    reconnect_backoff: float = 1.0              # 1.0 = fixed interval
    max_reconnect_interval_s: Optional[float] = None
    max_reconnect_attempts: Optional[int] = None  # None = retry forever
    config_attempts: int = DEFAULT_ATTEMPTS
    config_retry_delay_s: float = DEFAULT_DELAY_S
    open_timeout_s: float = 10.0
    close_timeout_s: float = 5.0
    session: SessionConfig = field(default_factory=SessionConfig)

    def with_overrides(self, **overrides: Any) -> "GameLinkConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


_FIELD_TYPES: Dict[str, tuple] = {
    "endpoint": (str,),
    "reconnect_interval_s": (int, float),
    "reconnect_backoff": (int, float),
    "max_reconnect_interval_s": (int, float, type(None)),
    "max_reconnect_attempts": (int, type(None)),
    "config_attempts": (int,),
    "config_retry_delay_s": (int, float),
    "open_timeout_s": (int, float),
    "close_timeout_s": (int, float),
}


def config_from_mapping(data: Dict[str, Any]) -> GameLinkConfig:
    known = {f.name for f in fields(GameLinkConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(
            f"Unknown config key(s): {', '.join(unknown)}.",
            hint=f"Valid keys: {sorted(known)}",
            details={"unknown": unknown},
        )

    kwargs: Dict[str, Any] = {}
    for name, value in data.items():
        if name == "session":
            if not isinstance(value, dict):
                raise ConfigError("'session' must be a mapping.", details={"value": value})
            try:
                kwargs[name] = SessionConfig.from_mapping(value)
            except (TypeError, ValueError) as e:
                raise ConfigError("Invalid 'session' settings.", hint=str(e), details={"session": value}) from None
            continue

        expected = _FIELD_TYPES[name]
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(
                f"Invalid value for '{name}'.",
                hint=f"Expected {' or '.join(t.__name__ for t in expected)}, got {type(value).__name__}",
                details={"key": name, "value": value},
            )
        kwargs[name] = value

    return GameLinkConfig(**kwargs)


def load_config(path: str | Path) -> GameLinkConfig:
    """
    Load client settings from YAML. Missing keys keep their defaults.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(
            f"Missing config file: {path}",
            hint="Pass --config with an existing YAML file (see gamelink.example.yml).",
            details={"path": str(path)},
        ) from None
    except yaml.YAMLError as e:
        raise ConfigError(
            "Failed to parse config file.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if not isinstance(data, dict):
        raise ConfigError(
            "Config file root must be a mapping.",
            details={"path": str(path)},
        )

    return config_from_mapping(data)
