"""Stdio transport: newline-delimited JSON-RPC over stdin/stdout.

One connection per process. Input arrives as chunks; each chunk is split on
newlines and every line is decoded and dispatched in arrival order, with the
response written and drained before the next line is touched, so stdout never
reorders. A line split across two chunks is buffered until its newline (or end
of input) arrives.

Diagnostics go to the stderr console; stdout carries only JSON-RPC frames.

End of input stops the transport, which hands exit code 0 to the shutdown
hook. The transport itself never exits the process.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import IO, TYPE_CHECKING

from mcpserve.rpc.protocol import PARSE_ERROR, encode, make_error_response, split_frames
from mcpserve.transport.base import InputPort, OutputPort, ShutdownHook, Transport

if TYPE_CHECKING:
    from rich.console import Console

    from mcpserve.rpc.provider import CapabilityProvider
    from mcpserve.rpc.types import Message

logger = logging.getLogger(__name__)

STDIO_PROTOCOL_VERSION = "2024-11-05"

READ_CHUNK_SIZE = 65536  # 64KB
MAX_LINE_LENGTH = 10 * 1024 * 1024  # 10MB, bounds the partial-line buffer


class ProcessStdin:
    """InputPort over the process's binary stdin.

    Pipes, sockets and terminals are read through an asyncio pipe transport,
    so a pending read is cancelled with its task and leaves no thread behind.
    Anything the event loop cannot watch (a regular file redirected to stdin)
    is read in a worker thread; such reads never block indefinitely.
    """

    def __init__(self, stream: IO[bytes] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin.buffer
        self._reader: asyncio.StreamReader | None = None
        self._pipe: asyncio.ReadTransport | None = None
        self._connected = False

    async def _connect(self) -> None:
        self._connected = True
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=MAX_LINE_LENGTH)
        try:
            self._pipe, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), self._stream
            )
        except (ValueError, NotImplementedError, OSError) as e:
            logger.debug("stdin is not pollable, reading in a worker thread: %s", e)
            return
        self._reader = reader

    async def read(self, n: int = -1) -> bytes:
        if not self._connected:
            await self._connect()
        size = n if n > 0 else READ_CHUNK_SIZE
        if self._reader is not None:
            return await self._reader.read(size)
        return await asyncio.to_thread(self._stream.read1, size)  # type: ignore[attr-defined]

    def close(self) -> None:
        if self._pipe is not None:
            self._pipe.close()
            self._pipe = None


class ProcessStdout:
    """OutputPort over the process's binary stdout."""

    def __init__(self, stream: IO[bytes] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


class StdioTransport(Transport):
    """MCP transport over a pair of byte streams.

    Args:
        provider: Capability provider backing the dispatcher.
        stdin: Input port. Defaults to the process stdin.
        stdout: Output port. Defaults to the process stdout.
        shutdown: Called with exit code 0 after the transport stops.
        console: Diagnostic console. Defaults to the shared stderr console.
    """

    protocol_version = STDIO_PROTOCOL_VERSION
    name = "stdio"

    def __init__(
        self,
        provider: CapabilityProvider,
        stdin: InputPort | None = None,
        stdout: OutputPort | None = None,
        shutdown: ShutdownHook | None = None,
        console: Console | None = None,
    ) -> None:
        super().__init__(provider, console)
        self._stdin: InputPort = stdin if stdin is not None else ProcessStdin()
        self._stdout: OutputPort = stdout if stdout is not None else ProcessStdout()
        self._shutdown = shutdown
        self._buffer = b""
        self._discarding = False
        self._reader_task: asyncio.Task[None] | None = None
        self._running = False
        self._stop_called = False
        self._write_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe to the input stream. Calling it again while running is a no-op."""
        if self._running or self._stop_called:
            return
        self._running = True
        self.console.print("MCP server started on stdio")
        logger.info("stdio transport started")
        self._reader_task = asyncio.create_task(self._read_loop(), name="mcpserve-stdio-reader")

    async def stop(self) -> None:
        """Flush output, report, and hand exit code 0 to the shutdown hook."""
        if self._stop_called:
            return
        self._stop_called = True
        self._running = False

        task = self._reader_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        close_input = getattr(self._stdin, "close", None)
        if close_input is not None:
            close_input()

        try:
            async with self._write_lock:
                await self._stdout.drain()
        except (BrokenPipeError, ConnectionResetError, OSError) as e:
            logger.debug("stdout flush failed during stop: %s", e)

        self.console.print("MCP server stopped")
        logger.info("stdio transport stopped")
        self._stopped.set()
        if self._shutdown is not None:
            self._shutdown(0)

    async def send(self, message: Message) -> None:
        """Write one message followed by a single newline, then drain."""
        async with self._write_lock:
            self._stdout.write(encode(message) + b"\n")
            await self._stdout.drain()

    async def _read_loop(self) -> None:
        try:
            while True:
                chunk = await self._stdin.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                await self.handle_chunk(chunk)

            # End of stream: a final line without newline still counts
            tail, self._buffer = self._buffer, b""
            if tail and not self._discarding:
                for frame in split_frames(tail):
                    await self._handle_line(frame)
        except (OSError, ValueError) as e:
            logger.error("stdin read failed, stopping transport: %s", e)

        await self.stop()

    async def handle_chunk(self, chunk: bytes) -> None:
        """Process every complete line in ``chunk``, strictly in order."""
        data = self._buffer + chunk
        if self._discarding:
            # Skip the rest of an oversized line that was already rejected
            _, newline, data = data.partition(b"\n")
            if not newline:
                self._buffer = b""
                return
            self._discarding = False

        complete, newline, rest = data.rpartition(b"\n")
        if not newline:
            self._buffer = data
            await self._check_buffer_limit()
            return

        self._buffer = rest
        for frame in split_frames(complete):
            await self._handle_line(frame)
        await self._check_buffer_limit()

    async def _check_buffer_limit(self) -> None:
        if len(self._buffer) <= MAX_LINE_LENGTH:
            return
        logger.warning("Input line exceeds %d bytes, discarding it", MAX_LINE_LENGTH)
        self._buffer = b""
        if not self._discarding:
            self._discarding = True
            await self.send(
                make_error_response(
                    None, PARSE_ERROR, data=f"Line exceeds maximum length ({MAX_LINE_LENGTH} bytes)"
                )
            )

    async def _handle_line(self, frame: bytes) -> None:
        response = await self.dispatcher.handle_frame(frame)
        if response is not None:
            await self.send(response)
