"""JSON-RPC 2.0 codec, MCP method dispatch and the capability provider contract.

Example usage:
    dispatcher = Dispatcher(provider, protocol_version="2025-03-26")
    response = await dispatcher.handle_frame(
        b'{"jsonrpc":"2.0","id":1,"method":"tools/list"}'
    )
    print(encode(response))
"""

from mcpserve.rpc.dispatcher import Dispatcher
from mcpserve.rpc.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    decode,
    encode,
    make_error_response,
    make_success_response,
    split_frames,
)
from mcpserve.rpc.provider import (
    CapabilityProvider,
    ResourceDescriptor,
    ToolDescriptor,
    ToolOutcome,
    invoke_tool,
)
from mcpserve.rpc.types import Message, Request, RequestId, Response

__all__ = [
    # Types
    "Message",
    "Request",
    "RequestId",
    "Response",
    # Codec
    "decode",
    "encode",
    "split_frames",
    "make_error_response",
    "make_success_response",
    # Error codes
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    # Dispatch
    "Dispatcher",
    # Provider contract
    "CapabilityProvider",
    "ToolDescriptor",
    "ResourceDescriptor",
    "ToolOutcome",
    "invoke_tool",
]
