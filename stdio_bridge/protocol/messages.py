"""
Dispatch Outcomes

Every frame read from the subprocess ends up as exactly one of:

- Resolved: a reply that completed a pending call
- Unsolicited: a valid message no pending call was waiting for
- DecodeError: bytes that could not be turned into a message

DecodedMessage is the intermediate value the frame decoder hands to the
channel before routing.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class DecodedMessage:
    """A complete frame whose payload parsed as JSON."""

    value: Any


@dataclass(frozen=True)
class DecodeError:
    """A frame (or header block) that was dropped."""

    reason: str
    raw: bytes = b""


@dataclass(frozen=True)
class Resolved:
    """A reply delivered to the caller waiting on ``key``."""

    key: str
    message: Any


@dataclass(frozen=True)
class Unsolicited:
    """A message with no matching pending call (e.g. a notification)."""

    message: Any


FrameOutcome = Union[DecodedMessage, DecodeError]
DispatchOutcome = Union[Resolved, Unsolicited, DecodeError]
