# gamelink/protocol/errors.py

class ProtocolError(Exception):
    """Base for protocol-level failures (parse/shape of inbound frames)."""

class DecodeError(ProtocolError):
    def __init__(self, reason: str, text: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.text = text
