"""Pure asyncio HTTP/1.1 plumbing shared by the SSE and streamable-HTTP transports.

One request per connection (``Connection: close``), except for SSE streams,
which keep the connection until the client or the server closes it. Routing is
a ``(method, path)`` table; handlers receive the parsed request plus the raw
reader and writer so streaming responses can hold the socket.

Every response carries ``Access-Control-Allow-Origin: *`` and OPTIONS preflight
requests are answered with 204.

Example usage:
    class MyTransport(HttpServerTransport):
        def __init__(self, provider):
            super().__init__(provider)
            self.add_route("POST", "/mcp", self._handle_post)
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, urlsplit

from mcpserve.core.errors import McpError, TransportError
from mcpserve.rpc.protocol import INTERNAL_ERROR, PARSE_ERROR, encode, make_error_response
from mcpserve.transport.base import ShutdownHook, Transport

if TYPE_CHECKING:
    from rich.console import Console

    from mcpserve.rpc.provider import CapabilityProvider

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1_048_576  # 1MB
READ_TIMEOUT = 30.0

# HTTP header limits (DoS protection)
MAX_HEADERS_COUNT = 128
MAX_HEADER_NAME_LEN = 1024
MAX_HEADER_VALUE_LEN = 8192
MAX_TOTAL_HEADERS_SIZE = 32 * 1024  # 32KB
MAX_REQUEST_LINE_LEN = 8192

STATUS_MESSAGES = {
    200: "OK",
    202: "Accepted",
    204: "No Content",
    302: "Found",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    500: "Internal Server Error",
}

CORS_HEADERS = [("Access-Control-Allow-Origin", "*")]
CORS_PREFLIGHT_HEADERS = [
    ("Access-Control-Allow-Methods", "GET, POST, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, Authorization, Mcp-Session-Id"),
    ("Access-Control-Max-Age", "86400"),
]


@dataclass
class HttpRequest:
    """Parsed HTTP request.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: Request path without the query string (e.g., "/mcp")
        query: Query string parameters (last value wins)
        headers: Dict of lowercase header names to values
        body: Raw request body
    """

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        """Media type without parameters, lowercased."""
        return self.headers.get("content-type", "").split(";", 1)[0].strip().lower()


class HttpParseError(McpError):
    """Raised when HTTP request parsing fails."""

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.status = status


RouteHandler = Callable[[HttpRequest, asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


async def _readline(reader: asyncio.StreamReader, what: str) -> bytes:
    try:
        return await asyncio.wait_for(reader.readline(), timeout=READ_TIMEOUT)
    except TimeoutError:
        raise HttpParseError(f"{what} timeout") from None
    except ValueError as e:
        # StreamReader limit exceeded before a newline was seen
        raise HttpParseError(f"{what} too long: {e}") from e


async def read_http_request_headers(
    reader: asyncio.StreamReader,
) -> tuple[str, str, dict[str, str]]:
    """Read the request line and headers (not the body).

    Args:
        reader: The asyncio StreamReader to read from.

    Returns:
        Tuple of (method, target, headers). ``target`` still holds the query
        string.

    Raises:
        HttpParseError: If the request line or headers are malformed.
    """
    request_line = await _readline(reader, "Request")
    if not request_line:
        raise HttpParseError("Empty request")

    if len(request_line) > MAX_REQUEST_LINE_LEN:
        raise HttpParseError(f"Request line too long: {len(request_line)} > {MAX_REQUEST_LINE_LEN}")

    # "POST /mcp HTTP/1.1\r\n"
    try:
        request_line_str = request_line.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise HttpParseError(f"Invalid request encoding: {e}") from e
    parts = request_line_str.split(" ")
    if len(parts) != 3:
        raise HttpParseError(f"Invalid request line: {request_line_str}")
    method, target, _version = parts

    headers: dict[str, str] = {}
    total_headers_size = 0

    while True:
        header_line = await _readline(reader, "Header read")
        if not header_line or header_line in (b"\r\n", b"\n"):
            break

        total_headers_size += len(header_line)
        if total_headers_size > MAX_TOTAL_HEADERS_SIZE:
            raise HttpParseError(
                f"Total headers size exceeds limit: {total_headers_size} > {MAX_TOTAL_HEADERS_SIZE}"
            )

        try:
            header_str = header_line.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise HttpParseError(f"Invalid header encoding: {e}") from e

        if ":" not in header_str:
            continue  # Skip malformed headers

        name, value = header_str.split(":", 1)
        name = name.strip()
        value = value.strip()

        if len(name) > MAX_HEADER_NAME_LEN:
            raise HttpParseError(f"Header name too long: {len(name)} > {MAX_HEADER_NAME_LEN}")
        if len(value) > MAX_HEADER_VALUE_LEN:
            raise HttpParseError(f"Header value too long: {len(value)} > {MAX_HEADER_VALUE_LEN}")
        if len(headers) >= MAX_HEADERS_COUNT:
            raise HttpParseError(f"Too many headers: exceeds limit of {MAX_HEADERS_COUNT}")

        headers[name.lower()] = value

    return method.upper(), target, headers


async def _read_exactly(reader: asyncio.StreamReader, n: int) -> bytes:
    try:
        return await asyncio.wait_for(reader.readexactly(n), timeout=READ_TIMEOUT)
    except TimeoutError:
        raise HttpParseError("Body read timeout") from None
    except asyncio.IncompleteReadError as e:
        raise HttpParseError(f"Incomplete body: expected {n}, got {len(e.partial)}") from e


async def _read_chunked_body(reader: asyncio.StreamReader) -> bytes:
    body = bytearray()
    while True:
        size_line = await _readline(reader, "Chunk size")
        size_str = size_line.split(b";", 1)[0].strip()
        try:
            size = int(size_str, 16)
        except ValueError as e:
            raise HttpParseError(f"Invalid chunk size: {size_str!r}") from e

        if size == 0:
            # Skip trailers up to the terminating blank line
            while (await _readline(reader, "Trailer")).strip():
                pass
            return bytes(body)

        if len(body) + size > MAX_BODY_SIZE:
            raise HttpParseError(f"Request body too large: exceeds {MAX_BODY_SIZE}", status=413)
        body += await _read_exactly(reader, size)
        await _read_exactly(reader, 2)  # CRLF after each chunk


async def read_http_body(reader: asyncio.StreamReader, headers: dict[str, str]) -> bytes:
    """Read the request body from Content-Length or chunked framing.

    Args:
        reader: The asyncio StreamReader to read from.
        headers: Parsed headers dict (lowercase keys).

    Returns:
        The raw body, b"" when there is none.

    Raises:
        HttpParseError: If the body is too large, incomplete, or malformed.
    """
    if "chunked" in headers.get("transfer-encoding", "").lower():
        return await _read_chunked_body(reader)

    content_length_str = headers.get("content-length", "0")
    try:
        content_length = int(content_length_str)
    except ValueError as e:
        raise HttpParseError(f"Invalid Content-Length: {content_length_str}") from e

    if content_length < 0:
        raise HttpParseError(f"Invalid Content-Length: {content_length_str}")
    if content_length > MAX_BODY_SIZE:
        raise HttpParseError(
            f"Request body too large: {content_length} > {MAX_BODY_SIZE}", status=413
        )
    if content_length == 0:
        return b""
    return await _read_exactly(reader, content_length)


def parse_target(target: str) -> tuple[str, dict[str, str]]:
    """Split a request target into path and query parameters."""
    parts = urlsplit(target)
    return parts.path or "/", dict(parse_qsl(parts.query, keep_blank_values=True))


def _status_line(status: int) -> str:
    return f"HTTP/1.1 {status} {STATUS_MESSAGES.get(status, 'Unknown')}"


def _head(status: int, headers: list[tuple[str, str]]) -> bytes:
    lines = [_status_line(status)]
    lines.extend(f"{name}: {value}" for name, value in CORS_HEADERS + headers)
    lines.extend(["", ""])
    return "\r\n".join(lines).encode("utf-8")


async def send_http_response(
    writer: asyncio.StreamWriter,
    status: int,
    body: str | bytes = b"",
    content_type: str | None = "application/json",
    headers: list[tuple[str, str]] | None = None,
) -> None:
    """Send a complete HTTP response and close-delimit it.

    Args:
        writer: The asyncio StreamWriter to write to.
        status: HTTP status code (e.g., 200, 400, 500).
        body: Response body.
        content_type: Content-Type header value, omitted when None.
        headers: Extra headers, after the CORS header.
    """
    body_bytes = body.encode("utf-8") if isinstance(body, str) else body
    response_headers: list[tuple[str, str]] = []
    if content_type is not None:
        response_headers.append(("Content-Type", f"{content_type}; charset=utf-8"))
    response_headers.append(("Content-Length", str(len(body_bytes))))
    response_headers.append(("Connection", "close"))
    if headers:
        response_headers.extend(headers)

    writer.write(_head(status, response_headers) + body_bytes)
    await writer.drain()


async def send_chunked_response(
    writer: asyncio.StreamWriter,
    status: int,
    body: bytes,
    content_type: str = "application/json",
) -> None:
    """Send a response with ``Transfer-Encoding: chunked`` as one chunk plus terminator."""
    head = _head(
        status,
        [
            ("Content-Type", f"{content_type}; charset=utf-8"),
            ("Transfer-Encoding", "chunked"),
            ("Connection", "close"),
        ],
    )
    writer.write(head + f"{len(body):x}\r\n".encode("ascii") + body + b"\r\n0\r\n\r\n")
    await writer.drain()


async def send_sse_headers(writer: asyncio.StreamWriter) -> None:
    """Start an event stream response."""
    writer.write(
        _head(
            200,
            [
                ("Content-Type", "text/event-stream; charset=utf-8"),
                ("Cache-Control", "no-cache"),
                ("Connection", "keep-alive"),
                ("X-Accel-Buffering", "no"),  # Disable proxy buffering
            ],
        )
    )
    await writer.drain()


async def send_json(writer: asyncio.StreamWriter, status: int, payload: Any) -> None:
    """Send a plain JSON document (not a JSON-RPC message)."""
    await send_http_response(writer, status, json.dumps(payload, separators=(",", ":")))


async def send_rpc_error(
    writer: asyncio.StreamWriter, status: int, code: int, data: str | None = None
) -> None:
    """Send a JSON-RPC error response with a null id."""
    await send_http_response(writer, status, encode(make_error_response(None, code, data=data)))


class HttpServerTransport(Transport):
    """Base class for transports served over a local asyncio HTTP server.

    Subclasses register routes in ``__init__`` and provide ``started_message``.

    Args:
        provider: Capability provider backing the dispatcher.
        host: Interface to bind. Defaults to the configured host.
        port: Port to bind; 0 picks a free one. Defaults to the configured port.
        shutdown: Called with exit code 0 after the server stops.
        console: Diagnostic console. Defaults to the shared stderr console.
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        host: str | None = None,
        port: int | None = None,
        shutdown: ShutdownHook | None = None,
        console: Console | None = None,
    ) -> None:
        super().__init__(provider, console)
        self.host = host if host is not None else self.config.host
        self._requested_port = port if port is not None else self.config.port
        self._shutdown = shutdown
        self._routes: dict[tuple[str, str], RouteHandler] = {}
        self._server: asyncio.Server | None = None
        self._connections: set[asyncio.StreamWriter] = set()
        self._stop_called = False

    def add_route(self, method: str, path: str, handler: RouteHandler) -> None:
        self._routes[(method.upper(), path)] = handler

    @property
    def routes(self) -> list[tuple[str, str]]:
        return sorted(self._routes)

    @property
    def port(self) -> int:
        """The bound port once started, else the requested one."""
        if self._server is not None and self._server.sockets:
            return self._server.sockets[0].getsockname()[1]
        return self._requested_port

    @property
    def is_running(self) -> bool:
        return self._server is not None and not self._stop_called

    def started_message(self) -> str:
        return f"MCP server started on HTTP at port {self.port}"

    async def start(self) -> None:
        """Bind and begin accepting connections.

        Raises:
            TransportError: If the address cannot be bound.
        """
        if self._server is not None:
            return
        try:
            self._server = await asyncio.start_server(
                self._client_handler,
                host=self.host,
                port=self._requested_port,
            )
        except OSError as e:
            raise TransportError(
                f"Failed to bind {self.name} server to {self.host}:{self._requested_port}: {e}"
            ) from e

        self.console.print(self.started_message())
        logger.info("%s server running at http://%s:%s/", self.name, self.host, self.port)

    async def stop(self) -> None:
        """Stop accepting, close open connections, then report."""
        if self._stop_called:
            return
        self._stop_called = True

        server = self._server
        if server is not None:
            server.close()
        await self.close_connections()
        for writer in list(self._connections):
            writer.close()
        if server is not None:
            await server.wait_closed()

        self.console.print("MCP server stopped")
        logger.info("%s server stopped", self.name)
        self._stopped.set()
        if self._shutdown is not None:
            self._shutdown(0)

    async def close_connections(self) -> None:
        """Hook for subclasses holding long-lived streams."""

    async def _client_handler(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        self._connections.add(writer)
        try:
            try:
                method, target, headers = await read_http_request_headers(reader)
            except HttpParseError as e:
                await send_rpc_error(writer, e.status, PARSE_ERROR, e.message)
                return

            path, query = parse_target(target)

            if method == "OPTIONS":
                await send_http_response(
                    writer, 204, content_type=None, headers=CORS_PREFLIGHT_HEADERS
                )
                return

            handler = self._routes.get((method, path))
            if handler is None:
                allowed = sorted(m for (m, p) in self._routes if p == path)
                if allowed:
                    await send_http_response(
                        writer,
                        405,
                        json.dumps({"error": "Method not allowed"}),
                        headers=[("Allow", ", ".join(allowed + ["OPTIONS"]))],
                    )
                else:
                    await send_http_response(writer, 404, json.dumps({"error": "Not found"}))
                return

            try:
                body = await read_http_body(reader, headers)
            except HttpParseError as e:
                await send_rpc_error(writer, e.status, PARSE_ERROR, e.message)
                return

            request = HttpRequest(method=method, path=path, query=query, headers=headers, body=body)
            await handler(request, reader, writer)

        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug("Client disconnected: %s", e)
        except Exception as e:
            logger.error("Unexpected error handling connection: %s", e, exc_info=True)
            try:
                await send_rpc_error(writer, 500, INTERNAL_ERROR, f"Server error: {type(e).__name__}")
            except Exception as send_err:
                logger.debug("Failed to send error response (client disconnected?): %s", send_err)
        finally:
            self._connections.discard(writer)
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as close_err:
                logger.debug("Connection close failed (already closed?): %s", close_err)

    async def dispatch_body(self, body: bytes) -> tuple[int, bytes]:
        """Run one JSON-RPC body through the dispatcher.

        Returns:
            (status, payload): 200 with the encoded response, 202 with an empty
            payload for notifications, or 400 with the error for bodies that
            could not be decoded.
        """
        response = await self.dispatcher.handle_frame(body)
        if response is None:
            return 202, b""
        status = 200
        if response.error is not None and response.error.get("code") == PARSE_ERROR:
            status = 400
        return status, encode(response)
