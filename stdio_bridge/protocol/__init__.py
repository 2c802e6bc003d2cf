"""
Wire Protocol

Content-Length framing and request/reply correlation for the subprocess
JSON-RPC stream.
"""

from stdio_bridge.protocol.correlation import CorrelationTable, correlation_key
from stdio_bridge.protocol.framing import FrameDecoder, decode_all, encode
from stdio_bridge.protocol.messages import (
    DecodedMessage,
    DecodeError,
    DispatchOutcome,
    Resolved,
    Unsolicited,
)

__all__ = [
    "CorrelationTable",
    "correlation_key",
    "FrameDecoder",
    "decode_all",
    "encode",
    "DecodedMessage",
    "DecodeError",
    "DispatchOutcome",
    "Resolved",
    "Unsolicited",
]
