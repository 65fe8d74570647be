"""HTTP + Server-Sent Events transport.

Routes:
    GET  /mcp       Open an event stream. Server messages arrive as
                    ``data: <json>`` frames until either side closes.
    POST /messages  Send one JSON-RPC message; the response comes back as the
                    HTTP response body (202 with no body for notifications).

``send()`` broadcasts to every open stream through the ChannelRegistry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from mcpserve.rpc.protocol import encode
from mcpserve.transport.http import (
    HttpRequest,
    HttpServerTransport,
    send_http_response,
    send_sse_headers,
)
from mcpserve.transport.registry import ChannelRegistry, SseChannel

if TYPE_CHECKING:
    from rich.console import Console

    from mcpserve.rpc.provider import CapabilityProvider
    from mcpserve.rpc.types import Message
    from mcpserve.transport.base import ShutdownHook

logger = logging.getLogger(__name__)

SSE_PROTOCOL_VERSION = "2024-11-05"
DEFAULT_KEEPALIVE_INTERVAL = 15.0
KEEPALIVE_FRAME = b": keepalive\n\n"


def format_sse_frame(payload: bytes) -> bytes:
    """Wrap an encoded message as a single SSE data event."""
    return b"data: " + payload + b"\n\n"


class SseTransport(HttpServerTransport):
    """MCP over HTTP POST (client to server) and SSE (server to client).

    Args:
        provider: Capability provider backing the dispatcher.
        host: Interface to bind. Defaults to the configured host.
        port: Port to bind; 0 picks a free one. Defaults to the configured port.
        shutdown: Called with exit code 0 after the server stops.
        console: Diagnostic console.
        keepalive_interval: Seconds between ``: keepalive`` comments on idle
            streams. None disables them.
        registry: Channel registry. A fresh one by default.
    """

    protocol_version = SSE_PROTOCOL_VERSION
    name = "sse"

    def __init__(
        self,
        provider: CapabilityProvider,
        host: str | None = None,
        port: int | None = None,
        shutdown: ShutdownHook | None = None,
        console: Console | None = None,
        keepalive_interval: float | None = DEFAULT_KEEPALIVE_INTERVAL,
        registry: ChannelRegistry | None = None,
    ) -> None:
        super().__init__(provider, host=host, port=port, shutdown=shutdown, console=console)
        self.keepalive_interval = keepalive_interval
        self.registry = registry if registry is not None else ChannelRegistry()
        self.add_route("GET", "/mcp", self._handle_stream)
        self.add_route("POST", "/messages", self._handle_message)

    def started_message(self) -> str:
        return f"MCP server started on HTTP+SSE at port {self.port}"

    async def send(self, message: Message) -> None:
        """Broadcast a message to every open stream."""
        delivered = self.registry.broadcast(format_sse_frame(encode(message)))
        logger.debug("Broadcast SSE frame to %d channel(s)", delivered)

    async def close_connections(self) -> None:
        self.registry.close_all()

    async def _handle_message(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        status, payload = await self.dispatch_body(request.body)
        if status == 202:
            await send_http_response(writer, 202, content_type=None)
        else:
            await send_http_response(writer, status, payload)

    async def _handle_stream(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        await send_sse_headers(writer)
        channel = self.registry.open()
        logger.info("SSE stream opened (%d open)", len(self.registry))
        try:
            await self._pump(channel, reader, writer)
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.debug("SSE client disconnected: %s", e)
        finally:
            self.registry.unregister(channel)
            logger.info("SSE stream closed (%d open)", len(self.registry))

    async def _pump(
        self,
        channel: SseChannel,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        disconnected = asyncio.create_task(_wait_for_eof(reader))
        next_frame: asyncio.Task[bytes | None] | None = None
        try:
            while True:
                if next_frame is None:
                    next_frame = asyncio.create_task(channel.queue.get())
                done, _ = await asyncio.wait(
                    {next_frame, disconnected},
                    timeout=self.keepalive_interval,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if disconnected in done:
                    return
                if next_frame not in done:
                    writer.write(KEEPALIVE_FRAME)
                    await writer.drain()
                    continue

                frame = next_frame.result()
                next_frame = None
                if frame is None:
                    return
                writer.write(frame)
                await writer.drain()
        finally:
            disconnected.cancel()
            if next_frame is not None:
                next_frame.cancel()


async def _wait_for_eof(reader: asyncio.StreamReader) -> None:
    # Clients send nothing after the GET; any read returning b"" means gone
    try:
        while await reader.read(1024):
            pass
    except (ConnectionResetError, OSError):
        pass
