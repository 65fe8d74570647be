"""Typed exception hierarchy for mcpserve."""

from __future__ import annotations

from typing import Any


class McpError(Exception):
    """Base class for all mcpserve errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(McpError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""


class TransportError(McpError):
    """Raised when a transport cannot serve (bind failure, broken input stream).

    Transport errors have no request context, so they are never turned into
    JSON-RPC error responses.
    """


class ProtocolError(McpError):
    """Base class for errors that map onto a JSON-RPC error code.

    Attributes:
        code: The JSON-RPC error code reported to the peer.
        request_id: Id of the offending request, when it could be recovered.
    """

    code: int = -32603

    def __init__(self, message: str, request_id: Any = None) -> None:
        super().__init__(message)
        self.request_id = request_id


class ParseError(ProtocolError):
    """Raised when a frame is not valid JSON."""

    code = -32700


class InvalidRequestError(ProtocolError):
    """Raised when valid JSON is not a JSON-RPC 2.0 envelope."""

    code = -32600


class InvalidParamsError(ProtocolError):
    """Raised when method parameters are invalid."""

    code = -32602


class ToolCallError(McpError):
    """Raised when the capability provider fails a tool call."""

    def __init__(self, tool_name: str, reason: str) -> None:
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(reason)
