"""Core building blocks shared by every mcpserve layer."""

from mcpserve.core.errors import (
    ConfigError,
    InvalidParamsError,
    InvalidRequestError,
    McpError,
    ParseError,
    ProtocolError,
    ToolCallError,
    TransportError,
)

__all__ = [
    "McpError",
    "ConfigError",
    "TransportError",
    "ProtocolError",
    "ParseError",
    "InvalidRequestError",
    "InvalidParamsError",
    "ToolCallError",
]
