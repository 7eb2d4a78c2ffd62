# gamelink/protocol/messages.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from .errors import DecodeError


class ControlKey(str, Enum):
    """Key tokens understood by the game server. Values are sent verbatim."""

    ARROW_UP = "ArrowUp"
    ARROW_DOWN = "ArrowDown"
    ARROW_LEFT = "ArrowLeft"
    ARROW_RIGHT = "ArrowRight"
    START = " "
    RESTART = "r"
    QUIT = "q"

    @classmethod
    def parse(cls, token: "str | ControlKey") -> Optional["ControlKey"]:
        try:
            return cls(token)
        except ValueError:
            return None

    def to_wire(self) -> Dict[str, Any]:
        return {"key": self.value}


MOVEMENT_KEYS = frozenset(
    {ControlKey.ARROW_UP, ControlKey.ARROW_DOWN, ControlKey.ARROW_LEFT, ControlKey.ARROW_RIGHT}
)


def _require_int(name: str, value: Any, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class SessionConfig:
    """
    One-time game configuration, sent before the game is started.

    Wire shape (bare object, no wrapper):
        {"gridWidth", "gridHeight", "gameSpeed", "snakeStartSize", "showDebugNumbers"}
    """
    grid_width: int = 20
    grid_height: int = 20
    game_speed: int = 100
    snake_start_size: int = 3
    show_debug_numbers: bool = False

    def __post_init__(self) -> None:
        _require_int("grid_width", self.grid_width, minimum=1)
        _require_int("grid_height", self.grid_height, minimum=1)
        _require_int("game_speed", self.game_speed, minimum=0)
        _require_int("snake_start_size", self.snake_start_size, minimum=1)
        if not isinstance(self.show_debug_numbers, bool):
            raise ValueError(
                f"show_debug_numbers must be a bool, got {type(self.show_debug_numbers).__name__}"
            )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "gridWidth": self.grid_width,
            "gridHeight": self.grid_height,
            "gameSpeed": self.game_speed,
            "snakeStartSize": self.snake_start_size,
            "showDebugNumbers": self.show_debug_numbers,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SessionConfig":
        """Build from snake_case (config file) or camelCase (wire) keys."""
        aliases = {
            "gridWidth": "grid_width",
            "gridHeight": "grid_height",
            "gameSpeed": "game_speed",
            "snakeStartSize": "snake_start_size",
            "showDebugNumbers": "show_debug_numbers",
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in aliases.values():
                raise ValueError(f"Unknown session config field '{key}'")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class Point:
    x: int
    y: int

    @classmethod
    def from_wire(cls, data: Any, *, what: str) -> "Point":
        if not isinstance(data, Mapping):
            raise DecodeError(f"{what} must be an object with x/y")
        x, y = data.get("x"), data.get("y")
        for v in (x, y):
            if isinstance(v, bool) or not isinstance(v, int):
                raise DecodeError(f"{what} coordinates must be ints, got {data!r}")
        return cls(x=x, y=y)

    def to_wire(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}


_SNAPSHOT_FLAGS = {
    "gameOver": "game_over",
    "gameWon": "game_won",
    "gameStarted": "game_started",
}


@dataclass(frozen=True)
class Snapshot:
    """
    Authoritative game state received from the server.

    `snake` is head first. Fields the client does not model (e.g. a score) are kept
    in `extra` (read-only) so that to_wire() gives back what was received. Optional
    keys missing from the received frame are listed in `absent` and stay missing.
    """
    snake: Tuple[Point, ...]
    food: Optional[Point] = None
    game_over: bool = False
    game_won: bool = False
    game_started: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)
    absent: FrozenSet[str] = field(default=frozenset(), compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def head(self) -> Optional[Point]:
        return self.snake[0] if self.snake else None

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "Snapshot":
        raw_snake = data.get("snake")
        if not isinstance(raw_snake, list):
            raise DecodeError("snapshot 'snake' must be a list")
        snake = tuple(Point.from_wire(seg, what="snake segment") for seg in raw_snake)

        raw_food = data.get("food")
        food = None if raw_food is None else Point.from_wire(raw_food, what="food")

        flags: Dict[str, bool] = {}
        for wire_name, attr in _SNAPSHOT_FLAGS.items():
            value = data.get(wire_name, False)
            if not isinstance(value, bool):
                raise DecodeError(f"snapshot '{wire_name}' must be a bool, got {value!r}")
            flags[attr] = value

        optional = {"food", *_SNAPSHOT_FLAGS}
        extra = {k: v for k, v in data.items() if k != "snake" and k not in optional}
        absent = frozenset(k for k in optional if k not in data)

        return cls(snake=snake, food=food, extra=extra, absent=absent, **flags)

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "snake": [p.to_wire() for p in self.snake],
            "food": self.food.to_wire() if self.food is not None else None,
            "gameOver": self.game_over,
            "gameWon": self.game_won,
            "gameStarted": self.game_started,
        }
        for key in self.absent:
            out.pop(key, None)
        out.update(self.extra)
        return out
