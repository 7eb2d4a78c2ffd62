# gamelink/protocol/codec.py
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .errors import DecodeError
from .messages import ControlKey, SessionConfig, Snapshot

Command = Union[ControlKey, SessionConfig]


class FrameKind(str, Enum):
    SNAPSHOT = "snapshot"
    MESSAGE = "message"


@dataclass(frozen=True)
class InboundFrame:
    kind: FrameKind
    snapshot: Optional[Snapshot] = None
    message: Optional[Mapping[str, Any]] = None


def encode(command: Command) -> str:
    """
    Serialize an outbound command to one text frame.

    Key commands are wrapped as {"key": token}; the session config goes out as its own
    bare object. Neither carries a type tag.
    """
    if isinstance(command, ControlKey):
        body = command.to_wire()
    elif isinstance(command, SessionConfig):
        body = command.to_wire()
    else:
        raise TypeError(f"Cannot encode {type(command).__name__}")
    return json.dumps(body, separators=(",", ":"))


def decode(text: str) -> InboundFrame:
    """
    Parse and classify one inbound text frame.

    Raises DecodeError for invalid JSON, non-object JSON, or an object that has a
    `snake` field but is not a well-formed snapshot.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"invalid JSON: {e}", text) from None
    except RecursionError:
        raise DecodeError("JSON nested too deeply", text) from None

    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}", text)

    if "snake" in data:
        try:
            snapshot = Snapshot.from_wire(data)
        except DecodeError as e:
            raise DecodeError(e.reason, text) from None
        return InboundFrame(kind=FrameKind.SNAPSHOT, snapshot=snapshot)

    return InboundFrame(kind=FrameKind.MESSAGE, message=data)
