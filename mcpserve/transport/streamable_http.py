"""Streamable HTTP transport.

Stateless request/response: every POST /mcp carries one JSON-RPC message and
gets its response back in the same HTTP exchange, written with chunked
transfer encoding. There is no server-to-client channel outside a request, so
``send()`` only logs.

With ``auth.type == "oauth"`` the placeholder OAuth endpoints are mounted too.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from mcpserve.transport.http import (
    HttpRequest,
    HttpServerTransport,
    send_chunked_response,
    send_http_response,
)
from mcpserve.transport.oauth import OAuthStub

if TYPE_CHECKING:
    from rich.console import Console

    from mcpserve.rpc.provider import CapabilityProvider
    from mcpserve.rpc.types import Message
    from mcpserve.transport.base import ShutdownHook

logger = logging.getLogger(__name__)

STREAMABLE_HTTP_PROTOCOL_VERSION = "2025-03-26"


class StreamableHttpTransport(HttpServerTransport):
    """MCP over single POST request/response exchanges."""

    protocol_version = STREAMABLE_HTTP_PROTOCOL_VERSION
    name = "streamable-http"

    def __init__(
        self,
        provider: CapabilityProvider,
        host: str | None = None,
        port: int | None = None,
        shutdown: ShutdownHook | None = None,
        console: Console | None = None,
    ) -> None:
        super().__init__(provider, host=host, port=port, shutdown=shutdown, console=console)
        self.add_route("POST", "/mcp", self._handle_post)

        self.oauth: OAuthStub | None = None
        if self.config.oauth_enabled:
            self.oauth = OAuthStub(self.config.name)
            self.oauth.mount(self)

    def started_message(self) -> str:
        return f"MCP server started on Streamable HTTP at port {self.port}"

    async def send(self, message: Message) -> None:
        logger.debug("Streamable HTTP has no open channel, dropping outbound message")

    async def _handle_post(
        self,
        request: HttpRequest,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        status, payload = await self.dispatch_body(request.body)
        if status == 202:
            await send_http_response(writer, 202, content_type=None)
        elif status == 200:
            await send_chunked_response(writer, 200, payload)
        else:
            await send_http_response(writer, status, payload)
