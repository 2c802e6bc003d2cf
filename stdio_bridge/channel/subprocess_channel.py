"""
Subprocess Channel

Owns the one long-lived subprocess and its stdio pipes:

- stdin: framed requests, written one whole frame at a time under a lock
- stdout: read by a single task, decoded by FrameDecoder, routed through
  the CorrelationTable
- stderr: forwarded verbatim to a diagnostic sink

When the subprocess exits, every pending call fails with
SubprocessTerminatedError, the channel stops accepting calls, and the
on_exit callback fires so the server can stop.
"""

import asyncio
import sys
import time
from typing import Any, Callable, Mapping, Optional, Sequence

from stdio_bridge.configs.constants import MAX_MESSAGE_SIZE, READ_CHUNK_SIZE, get_timeout
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.exceptions import (
    ChannelClosedError,
    ChannelError,
    SubprocessLaunchError,
    SubprocessTerminatedError,
)
from stdio_bridge.protocol.correlation import CorrelationTable, correlation_key
from stdio_bridge.protocol.framing import FrameDecoder, encode
from stdio_bridge.protocol.messages import DecodeError, DispatchOutcome, Resolved, Unsolicited

logger = get_logger("channel")

# Seconds to let stdout drain after the process exits
STDOUT_DRAIN_GRACE = 1.0


def write_to_stderr(chunk: bytes) -> None:
    """Default stderr sink: pass subprocess diagnostics straight through."""
    stream = getattr(sys.stderr, "buffer", None)
    if stream is not None:
        stream.write(chunk)
    else:
        sys.stderr.write(chunk.decode("utf-8", errors="replace"))
    sys.stderr.flush()


class SubprocessChannel:
    """Request/reply multiplexer over a subprocess speaking framed JSON-RPC."""

    def __init__(
        self,
        command: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        request_timeout: float = get_timeout("rpc_request"),
        max_message_size: int = MAX_MESSAGE_SIZE,
        stderr_sink: Optional[Callable[[bytes], None]] = None,
        on_exit: Optional[Callable[[Optional[int]], None]] = None,
    ):
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.env = dict(env) if env is not None else None
        self.cwd = cwd
        self.request_timeout = request_timeout
        self.stderr_sink = stderr_sink or write_to_stderr
        self.on_exit = on_exit

        self._decoder = FrameDecoder(max_message_size=max_message_size)
        self._table = CorrelationTable(
            default_timeout=request_timeout,
            on_unsolicited=self._on_unsolicited,
        )
        self._write_lock = asyncio.Lock()
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stdout_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._exit_task: Optional[asyncio.Task] = None
        self._exited = asyncio.Event()
        self._closing = False

        self.frames_written = 0
        self.frames_decoded = 0
        self.decode_errors = 0
        self.unsolicited = 0

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None and not self._exited.is_set()

    @property
    def accepting(self) -> bool:
        """True while new calls can be issued."""
        return self.is_running and not self._closing and not self._table.closed

    @property
    def table(self) -> CorrelationTable:
        return self._table

    def stats(self) -> dict[str, Any]:
        next_deadline = self._table.next_deadline()
        return {
            "pid": self.pid,
            "running": self.is_running,
            "returncode": self.returncode,
            "pending": len(self._table),
            "next_timeout_in": (
                round(max(0.0, next_deadline - time.monotonic()), 3)
                if next_deadline is not None
                else None
            ),
            "frames_written": self.frames_written,
            "frames_decoded": self.frames_decoded,
            "decode_errors": self.decode_errors,
            "unsolicited": self.unsolicited,
            "buffered_bytes": self._decoder.pending_bytes,
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Launch the subprocess and start the reader tasks.

        Raises:
            ChannelError: Channel was already started
            SubprocessLaunchError: Executable missing or not runnable
        """
        if self._process is not None:
            raise ChannelError("channel already started")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                cwd=self.cwd,
            )
        except OSError as e:
            raise SubprocessLaunchError(
                f"Failed to launch {self.command[0]}: {e}",
                {"command": " ".join(self.command)},
            ) from e

        logger.info(f"Started subprocess pid={self._process.pid}: {' '.join(self.command)}")
        self._stdout_task = asyncio.create_task(self._read_stdout(), name="bridge-stdout")
        self._stderr_task = asyncio.create_task(self._read_stderr(), name="bridge-stderr")
        self._exit_task = asyncio.create_task(self._watch_exit(), name="bridge-exit")

    async def close(self) -> None:
        """Reject pending calls, stop the subprocess and the reader tasks."""
        if self._closing:
            return
        self._closing = True
        self._table.close(ChannelClosedError("bridge is shutting down"))

        process = self._process
        if process is None:
            return

        if process.returncode is None:
            if process.stdin is not None:
                process.stdin.close()
            self._terminate()
            shutdown_timeout = get_timeout("subprocess_shutdown")
            try:
                await asyncio.wait_for(process.wait(), timeout=shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess ignored SIGTERM for {shutdown_timeout}s, killing it")
                process.kill()
                await process.wait()

        tasks = [t for t in (self._stdout_task, self._stderr_task, self._exit_task) if t is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Subprocess stopped (code {process.returncode})")

    async def wait_exit(self) -> Optional[int]:
        """Wait until the subprocess has exited and pending calls were failed."""
        await self._exited.wait()
        return self.returncode

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def write(self, frame: bytes) -> None:
        """
        Write one complete frame to the subprocess stdin.

        Frames never interleave and go out in call order.

        Raises:
            ChannelClosedError: Channel not running or stdin is broken
        """
        if not self.is_running or self._process.stdin is None:
            raise ChannelClosedError("subprocess is not running")

        stdin = self._process.stdin
        async with self._write_lock:
            try:
                stdin.write(frame)
                await stdin.drain()
            except ConnectionError as e:
                raise ChannelClosedError("subprocess stdin is closed", {"error": str(e)}) from e
            self.frames_written += 1

    async def send(self, message: Any) -> None:
        """Write a message that expects no reply (e.g. a notification)."""
        await self.write(encode(message))

    async def call(self, message: dict, timeout: Optional[float] = None) -> Any:
        """
        Send a request and wait for the reply carrying the same id.

        Args:
            message: JSON-RPC request with a non-null "id"
            timeout: Seconds to wait (request_timeout if None)

        Returns:
            The reply message, unmodified

        Raises:
            DuplicateIdError: A call with the same id is in flight
            RequestTimeoutError: No reply before the deadline
            SubprocessTerminatedError: Subprocess exited while waiting
            ChannelClosedError: Channel is not accepting calls
        """
        if self._process is None:
            raise ChannelClosedError("channel not started")

        identifier = message.get("id")
        frame = encode(message)
        future = self._table.register(identifier, timeout)
        try:
            await self.write(frame)
        except BaseException:
            self._table.discard(identifier)
            raise
        return await future

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def feed(self, chunk: bytes) -> list[DispatchOutcome]:
        """Decode a stdout chunk and route every completed frame."""
        outcomes: list[DispatchOutcome] = []
        for item in self._decoder.feed(chunk):
            if isinstance(item, DecodeError):
                self.decode_errors += 1
                outcomes.append(item)
                continue
            self.frames_decoded += 1
            outcomes.append(self._dispatch(item.value))
        return outcomes

    def _dispatch(self, message: Any) -> DispatchOutcome:
        identifier = None
        # Requests and notifications from the subprocess are never replies
        if isinstance(message, dict) and "method" not in message:
            identifier = message.get("id")
        if self._table.resolve(identifier, message):
            return Resolved(correlation_key(identifier), message)
        return Unsolicited(message)

    def _on_unsolicited(self, message: Any) -> None:
        self.unsolicited += 1
        logger.info(f"Subprocess notification/extra: {message}")

    async def _read_stdout(self) -> None:
        stream = self._process.stdout
        try:
            while True:
                chunk = await stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                self.feed(chunk)
        except Exception as e:
            # Nothing drains stdout any more: fail everything and stop the subprocess
            logger.critical(f"Subprocess stdout reader failed: {e!r}")
            self._table.close(ChannelError("subprocess stdout reader failed", {"error": repr(e)}))
            self._terminate()
            return
        logger.debug("Subprocess stdout closed")

    def _terminate(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass

    async def _read_stderr(self) -> None:
        stream = self._process.stderr
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            self.stderr_sink(chunk)

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()

        # Replies written just before exit still reach their callers
        done, _ = await asyncio.wait({self._stdout_task}, timeout=STDOUT_DRAIN_GRACE)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Subprocess stdout reader failed: {task.exception()!r}")

        if self._closing:
            self._exited.set()
            return

        logger.critical(f"Subprocess exited with code {returncode}")
        self._table.close(SubprocessTerminatedError(returncode))
        self._exited.set()
        if self.on_exit is not None:
            self.on_exit(returncode)
