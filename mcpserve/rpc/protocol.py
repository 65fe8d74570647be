"""JSON-RPC 2.0 message codec.

Pure functions shared by every transport: frames in, messages out, and back.
Nothing here performs I/O.
"""

import json
from typing import Any

from mcpserve.core.errors import InvalidRequestError, ParseError
from mcpserve.rpc.types import Message, Request, RequestId, Response

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
}


def _is_valid_id(value: Any) -> bool:
    # bool is an int subclass but never a valid id
    return value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool))


def split_frames(chunk: bytes) -> list[bytes]:
    """Split a newline-delimited chunk into frames.

    Handles both LF and CRLF line endings. Blank lines are dropped.

    Args:
        chunk: Raw bytes holding zero or more complete lines.

    Returns:
        Non-empty frames, in arrival order.
    """
    frames = []
    for line in chunk.split(b"\n"):
        line = line.rstrip(b"\r")
        if line.strip():
            frames.append(line)
    return frames


def decode(frame: bytes | str) -> Message:
    """Decode one frame into a Request or Response.

    Args:
        frame: A single JSON text, as bytes (UTF-8) or str.

    Returns:
        A Request (id None for notifications) or a Response sent by the peer.

    Raises:
        ParseError: If the frame is not valid UTF-8 or not valid JSON.
        InvalidRequestError: If the JSON is not a JSON-RPC 2.0 envelope. The
            id is attached when one could be read.
    """
    try:
        text = frame.decode("utf-8") if isinstance(frame, bytes) else frame
        data = json.loads(text)
    except UnicodeDecodeError as e:
        raise ParseError(f"Invalid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidRequestError(f"Message must be a JSON object, got: {type(data).__name__}")

    message_id = data.get("id")
    if not _is_valid_id(message_id):
        raise InvalidRequestError(
            f"id must be string, number, or null, got: {type(message_id).__name__}"
        )

    jsonrpc = data.get("jsonrpc")
    if jsonrpc != "2.0":
        raise InvalidRequestError(f"jsonrpc must be '2.0', got: {jsonrpc!r}", message_id)

    if "method" in data:
        method = data["method"]
        if not isinstance(method, str):
            raise InvalidRequestError(
                f"method must be a string, got: {type(method).__name__}", message_id
            )
        params = data.get("params")
        if params is not None and not isinstance(params, (dict, list)):
            raise InvalidRequestError(
                f"params must be object or array, got: {type(params).__name__}", message_id
            )
        return Request(jsonrpc=jsonrpc, method=method, params=params, id=message_id)

    has_result = "result" in data
    has_error = "error" in data
    if has_result == has_error:
        raise InvalidRequestError(
            "Message must have a method, or exactly one of result and error", message_id
        )
    error = data.get("error")
    if has_error and not (isinstance(error, dict) and "code" in error and "message" in error):
        raise InvalidRequestError("error must be an object with code and message", message_id)

    return Response(jsonrpc=jsonrpc, id=message_id, result=data.get("result"), error=error)


def to_dict(message: Message) -> dict[str, Any]:
    """Build the wire dict for a message."""
    if isinstance(message, Request):
        data: dict[str, Any] = {"jsonrpc": "2.0", "method": message.method}
        if message.params is not None:
            data["params"] = message.params
        if message.id is not None:
            data["id"] = message.id
        return data

    data = {"jsonrpc": "2.0", "id": message.id}
    if message.error is not None:
        data["error"] = message.error
    else:
        data["result"] = message.result
    return data


def encode(message: Message) -> bytes:
    """Serialize a message to compact UTF-8 JSON (no trailing newline).

    Always emits ``jsonrpc: "2.0"``. A Response carries exactly one of
    ``result`` and ``error``.
    """
    return json.dumps(to_dict(message), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def make_error_response(
    request_id: RequestId,
    code: int,
    message: str | None = None,
    data: Any = None,
) -> Response:
    """Create an error response.

    Args:
        request_id: The id from the original request (None if unknown).
        code: JSON-RPC error code.
        message: Human-readable message. Defaults to the standard message
            for the code.
        data: Optional additional error data. Omitted when None.

    Returns:
        A Response with the error field populated.
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message or ERROR_MESSAGES.get(code, "Server error"),
    }
    if data is not None:
        error["data"] = data

    return Response(jsonrpc="2.0", id=request_id, error=error)


def make_success_response(request_id: RequestId, result: Any) -> Response:
    """Create a success response."""
    return Response(jsonrpc="2.0", id=request_id, result=result)
