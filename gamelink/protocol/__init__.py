# protocol/__init__.py

from .messages import ControlKey, SessionConfig, Snapshot, Point
from .codec import encode, decode, InboundFrame, FrameKind
from .errors import ProtocolError, DecodeError

__all__ = [
    "ControlKey", "SessionConfig", "Snapshot", "Point",
    "encode", "decode", "InboundFrame", "FrameKind",
    "ProtocolError", "DecodeError",
]
