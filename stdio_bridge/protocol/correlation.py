"""
Request/Reply Correlation

Tracks calls waiting for a reply from the subprocess. Each pending call is
one entry keyed by the normalized JSON-RPC id, holding an asyncio.Future
and the timer handle that expires it.

Entry lifecycle:
    register -> pending -> resolved | expired | rejected -> gone

At most one entry exists per key; registering a pending key again raises
DuplicateIdError instead of replacing the first caller. Once an entry is
gone the id can be registered again.

All methods must run on the event loop thread.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Optional

from stdio_bridge.configs.constants import get_timeout
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.exceptions import (
    BridgeError,
    ChannelClosedError,
    DuplicateIdError,
    RequestTimeoutError,
)

logger = get_logger("correlation")


def correlation_key(identifier: Any) -> str:
    """
    Normalize a JSON-RPC id to its string key.

    Numbers and strings that print the same share a key, so a reply with
    ``"id": 7`` completes a call registered as ``"7"``.

    Raises:
        ValueError: identifier is None
    """
    if identifier is None:
        raise ValueError("correlation id must not be null")
    if isinstance(identifier, str):
        return identifier
    if isinstance(identifier, bool):
        return "true" if identifier else "false"
    if isinstance(identifier, int):
        return str(identifier)
    if isinstance(identifier, float):
        if identifier.is_integer():
            return str(int(identifier))
        return repr(identifier)
    return json.dumps(identifier, separators=(",", ":"), sort_keys=True)


@dataclass(eq=False)
class PendingCall:
    """One registered call awaiting its reply."""

    key: str
    future: asyncio.Future
    timeout: float
    deadline: float
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


def _log_unsolicited(message: Any) -> None:
    logger.info(f"Subprocess notification/extra: {message}")


class CorrelationTable:
    """Pending calls keyed by normalized id, each with its own deadline timer."""

    def __init__(
        self,
        default_timeout: float = get_timeout("rpc_request"),
        on_unsolicited: Optional[Callable[[Any], None]] = None,
    ):
        self.default_timeout = default_timeout
        self._on_unsolicited = on_unsolicited or _log_unsolicited
        self._entries: dict[str, PendingCall] = {}
        self._closed_error: Optional[BridgeError] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: Any) -> bool:
        try:
            return correlation_key(identifier) in self._entries
        except ValueError:
            return False

    @property
    def closed(self) -> bool:
        return self._closed_error is not None

    def pending_ids(self) -> list[str]:
        """Keys of all pending calls, in registration order."""
        return list(self._entries)

    def next_deadline(self) -> Optional[float]:
        """Earliest pending deadline on the time.monotonic() clock, or None."""
        if not self._entries:
            return None
        return min(entry.deadline for entry in self._entries.values())

    def register(self, identifier: Any, timeout: Optional[float] = None) -> asyncio.Future:
        """
        Start tracking a call and arm its deadline.

        Args:
            identifier: JSON-RPC id of the outgoing request
            timeout: Seconds to wait for the reply (default_timeout if None)

        Returns:
            Future completed with the reply message, or failed with
            RequestTimeoutError / the error passed to reject()

        Raises:
            ValueError: identifier is None
            DuplicateIdError: a call with the same key is pending
            ChannelClosedError: the table has been closed
        """
        key = correlation_key(identifier)
        if self._closed_error is not None:
            raise ChannelClosedError(
                "bridge is not accepting calls", {"reason": str(self._closed_error)}
            )
        if key in self._entries:
            raise DuplicateIdError(key)

        if timeout is None:
            timeout = self.default_timeout
        loop = asyncio.get_running_loop()
        entry = PendingCall(
            key=key,
            future=loop.create_future(),
            timeout=timeout,
            deadline=time.monotonic() + timeout,
        )
        entry.timer = loop.call_later(timeout, self._on_deadline, entry)
        entry.future.add_done_callback(partial(self._on_future_done, entry))
        self._entries[key] = entry
        logger.debug(f"Registered id={key} timeout={timeout:g}s ({len(self._entries)} pending)")
        return entry.future

    def resolve(self, identifier: Any, message: Any) -> bool:
        """
        Complete the pending call matching ``identifier`` with ``message``.

        Returns:
            True if a caller received the message. False if nothing was
            pending under that id; the message then goes to the
            unsolicited sink.
        """
        entry = self._lookup(identifier)
        if entry is None or entry.future.done():
            if entry is not None:
                self._remove(entry)
            self._on_unsolicited(message)
            return False

        self._remove(entry)
        entry.future.set_result(message)
        logger.debug(f"Resolved id={entry.key}")
        return True

    def expire(self, identifier: Any) -> bool:
        """Fail the pending call with RequestTimeoutError. False if not pending."""
        entry = self._lookup(identifier)
        if entry is None:
            return False
        self._fail(entry, RequestTimeoutError(entry.key, entry.timeout))
        return True

    def reject(self, identifier: Any, error: BaseException) -> bool:
        """Fail the pending call with ``error``. False if not pending."""
        entry = self._lookup(identifier)
        if entry is None:
            return False
        self._fail(entry, error)
        return True

    def reject_all(self, error: BaseException) -> int:
        """Fail every pending call with ``error``; returns how many."""
        entries = list(self._entries.values())
        for entry in entries:
            self._fail(entry, error)
        return len(entries)

    def close(self, error: Optional[BridgeError] = None) -> int:
        """Reject all pending calls and refuse new registrations."""
        self._closed_error = error or ChannelClosedError("bridge is shutting down")
        count = self.reject_all(self._closed_error)
        if count:
            logger.warning(f"Rejected {count} pending call(s): {self._closed_error}")
        return count

    def discard(self, identifier: Any) -> bool:
        """Forget a pending call without delivering anything to it."""
        entry = self._lookup(identifier)
        if entry is None:
            return False
        self._remove(entry)
        if not entry.future.done():
            entry.future.cancel()
        return True

    def _lookup(self, identifier: Any) -> Optional[PendingCall]:
        try:
            key = correlation_key(identifier)
        except ValueError:
            return None
        return self._entries.get(key)

    def _remove(self, entry: PendingCall) -> bool:
        if self._entries.get(entry.key) is not entry:
            return False
        del self._entries[entry.key]
        if entry.timer is not None:
            entry.timer.cancel()
        return True

    def _fail(self, entry: PendingCall, error: BaseException) -> None:
        self._remove(entry)
        if not entry.future.done():
            entry.future.set_exception(error)

    def _on_deadline(self, entry: PendingCall) -> None:
        if self._entries.get(entry.key) is not entry:
            return
        logger.warning(f"Timed out after {entry.timeout:g}s waiting for id={entry.key}")
        self._fail(entry, RequestTimeoutError(entry.key, entry.timeout))

    def _on_future_done(self, entry: PendingCall, future: asyncio.Future) -> None:
        # Caller gave up (cancelled task): free the id
        if future.cancelled():
            self._remove(entry)
