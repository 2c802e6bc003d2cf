"""
Content-Length Framing

Encodes JSON values into LSP-style frames and decodes a byte stream back
into JSON values:

    Content-Length: <byte length>\\r\\n
    \\r\\n
    <UTF-8 JSON payload>

Decoding is incremental. Bytes of an incomplete frame stay buffered until
the rest arrives. Framing problems (header without Content-Length, bad JSON,
oversized frames) drop the offending frame and never stop the stream.

Usage:
    from stdio_bridge.protocol.framing import FrameDecoder, encode

    stdin.write(encode({"jsonrpc": "2.0", "id": 1, "method": "ping"}))

    decoder = FrameDecoder()
    for outcome in decoder.feed(chunk):
        ...
"""

import json
import re
from typing import Any, Optional

from stdio_bridge.configs.constants import MAX_HEADER_SIZE, MAX_MESSAGE_SIZE
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.protocol.messages import DecodedMessage, DecodeError, FrameOutcome

logger = get_logger("framing")

HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH_PATTERN = re.compile(rb"content-length:\s*(\d+)", re.IGNORECASE)

# Longest slice of dropped bytes kept on a DecodeError
_RAW_PREVIEW = 200


def encode(value: Any) -> bytes:
    """
    Serialize ``value`` into one frame.

    The Content-Length is the byte length of the UTF-8 payload, not its
    character count.

    Raises:
        TypeError: value is not JSON serializable
        ValueError: value contains NaN or infinity
    """
    body = json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def parse_content_length(header: bytes) -> Optional[int]:
    """Return the Content-Length declared in a header block, or None."""
    match = CONTENT_LENGTH_PATTERN.search(header)
    if match is None:
        return None
    return int(match.group(1))


class FrameDecoder:
    """
    Stateful frame decoder owning the read buffer.

    feed() appends a chunk and returns one outcome per frame completed by
    it, in stream order. Not safe for concurrent use; the channel's single
    reader task is its only caller.
    """

    def __init__(
        self,
        max_message_size: int = MAX_MESSAGE_SIZE,
        max_header_size: int = MAX_HEADER_SIZE,
    ):
        self.max_message_size = max_message_size
        self.max_header_size = max_header_size
        self._buffer = bytearray()
        # Payload bytes of an oversized frame still to be skipped
        self._discard = 0

    @property
    def pending_bytes(self) -> int:
        """Number of buffered bytes not yet consumed."""
        return len(self._buffer)

    @property
    def buffer(self) -> bytes:
        """Copy of the unconsumed bytes."""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[FrameOutcome]:
        outcomes: list[FrameOutcome] = []

        if self._discard:
            if len(chunk) <= self._discard:
                self._discard -= len(chunk)
                return outcomes
            chunk = chunk[self._discard:]
            self._discard = 0

        self._buffer.extend(chunk)
        buf = self._buffer
        offset = 0

        while True:
            sep = buf.find(HEADER_SEPARATOR, offset)
            if sep == -1:
                if len(buf) - offset > self.max_header_size:
                    # Keep a possible partial separator at the tail
                    keep_from = len(buf) - (len(HEADER_SEPARATOR) - 1)
                    junk = bytes(buf[offset:keep_from])
                    logger.warning(f"Dropping {len(junk)} bytes with no frame header separator")
                    outcomes.append(DecodeError("header block too large", junk[:_RAW_PREVIEW]))
                    offset = keep_from
                break

            header = bytes(buf[offset:sep])
            body_start = sep + len(HEADER_SEPARATOR)
            length = parse_content_length(header)

            if length is None:
                logger.warning(f"Skipping header block without Content-Length: {header[:_RAW_PREVIEW]!r}")
                outcomes.append(DecodeError("missing Content-Length header", header[:_RAW_PREVIEW]))
                offset = body_start
                continue

            if length > self.max_message_size:
                logger.error(
                    f"Dropping frame of {length} bytes (max_message_size={self.max_message_size})"
                )
                outcomes.append(DecodeError(f"frame too large: {length} bytes", header[:_RAW_PREVIEW]))
                available = len(buf) - body_start
                if available >= length:
                    offset = body_start + length
                    continue
                self._discard = length - available
                offset = len(buf)
                break

            body_end = body_start + length
            if len(buf) < body_end:
                break

            payload = bytes(buf[body_start:body_end])
            offset = body_end
            outcomes.append(_parse_payload(payload))

        del buf[:offset]
        return outcomes


def _parse_payload(payload: bytes) -> FrameOutcome:
    try:
        return DecodedMessage(json.loads(payload.decode("utf-8")))
    except RecursionError:
        logger.error(f"JSON nesting too deep in {len(payload)} byte frame from subprocess")
        return DecodeError("JSON nesting too deep", payload[:_RAW_PREVIEW])
    except ValueError as e:
        logger.error(f"JSON parse error from subprocess: {e}")
        return DecodeError(f"invalid JSON payload: {e}", payload[:_RAW_PREVIEW])


def decode_all(
    buffer: bytes,
    max_message_size: int = MAX_MESSAGE_SIZE,
) -> tuple[list[Any], bytes]:
    """
    Decode every complete frame in ``buffer``.

    Stateless counterpart of FrameDecoder.feed(): dropped frames are logged
    and omitted.

    Args:
        buffer: Accumulated bytes read so far
        max_message_size: Largest accepted Content-Length

    Returns:
        Tuple of (decoded values in stream order, unconsumed remainder)
    """
    decoder = FrameDecoder(max_message_size=max_message_size)
    values = [
        outcome.value
        for outcome in decoder.feed(buffer)
        if isinstance(outcome, DecodedMessage)
    ]
    return values, decoder.buffer
