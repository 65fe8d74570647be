"""Port collision detection for the HTTP transports.

Before binding, the CLI probes the configured port so a second server fails
with a clear message instead of a bare bind error.

Detection Strategy:
    POST an MCP ``initialize`` request to the port. This is the fingerprint:
    - JSON-RPC response whose result carries protocolVersion and serverInfo
      -> MCP_SERVER
    - Connection refused -> NO_SERVER
    - Any other HTTP response -> OTHER_SERVICE
    - Timeout -> TIMEOUT
    - Other error -> ERROR

Example usage:
    from mcpserve.transport.detection import detect_server, DetectionResult

    result = await detect_server(3000, path="/mcp")
    if result == DetectionResult.NO_SERVER:
        # Safe to start a new server
        pass
"""

from enum import Enum

import httpx

from mcpserve.rpc.protocol import encode
from mcpserve.rpc.types import Request

# Where each HTTP transport accepts JSON-RPC POSTs
PROBE_PATHS = {
    "sse": "/messages",
    "streamable-http": "/mcp",
}


class DetectionResult(Enum):
    """Result of server detection probe.

    Attributes:
        NO_SERVER: Port is free, no service listening.
        MCP_SERVER: An MCP server answered the initialize probe.
        OTHER_SERVICE: Something else is running on the port.
        TIMEOUT: Connection attempt timed out.
        ERROR: An unexpected error occurred during detection.
    """

    NO_SERVER = "no_server"
    MCP_SERVER = "mcp_server"
    OTHER_SERVICE = "other_service"
    TIMEOUT = "timeout"
    ERROR = "error"


async def detect_server(
    port: int,
    host: str = "127.0.0.1",
    path: str = "/mcp",
    timeout: float = 2.0,
) -> DetectionResult:
    """Detect what is listening on ``host:port``.

    Args:
        port: The port to probe.
        host: The host to probe. Defaults to localhost.
        path: Path that accepts JSON-RPC POSTs on an MCP server.
        timeout: Connection/request timeout in seconds. Defaults to 2.0.

    Returns:
        DetectionResult indicating what was found on the port.
    """
    url = f"http://{host}:{port}{path}"

    request = Request(
        jsonrpc="2.0",
        method="initialize",
        params={"clientInfo": {"name": "mcpserve-probe", "version": "0"}},
        id=1,
    )

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                url,
                content=encode(request),
                headers={"Content-Type": "application/json"},
            )
            return _analyze_response(response)

    except httpx.ConnectError:
        return DetectionResult.NO_SERVER

    except httpx.TimeoutException:
        return DetectionResult.TIMEOUT

    except Exception:
        return DetectionResult.ERROR


def _analyze_response(response: httpx.Response) -> DetectionResult:
    """Decide whether an HTTP response came from an MCP server.

    A valid answer is JSON-RPC 2.0 with id 1 and a result holding
    ``protocolVersion`` and a ``serverInfo`` object.
    """
    try:
        data = response.json()
    except Exception:
        return DetectionResult.OTHER_SERVICE

    if not isinstance(data, dict):
        return DetectionResult.OTHER_SERVICE
    if data.get("jsonrpc") != "2.0" or data.get("id") != 1:
        return DetectionResult.OTHER_SERVICE

    result = data.get("result")
    if not isinstance(result, dict):
        return DetectionResult.OTHER_SERVICE
    if "protocolVersion" not in result or not isinstance(result.get("serverInfo"), dict):
        return DetectionResult.OTHER_SERVICE

    return DetectionResult.MCP_SERVER
