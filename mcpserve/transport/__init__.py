"""Transport bindings: stdio, HTTP + SSE, and streamable HTTP.

Example usage:
    transport = create_transport(provider, shutdown=sys.exit)
    async with transport:
        await transport.wait_stopped()
"""

from mcpserve.transport.base import InputPort, OutputPort, ShutdownHook, Transport
from mcpserve.transport.detection import DetectionResult, detect_server
from mcpserve.transport.factory import TRANSPORTS, create_transport
from mcpserve.transport.http import HttpRequest, HttpServerTransport
from mcpserve.transport.registry import ChannelRegistry, SseChannel
from mcpserve.transport.sse import SseTransport
from mcpserve.transport.stdio import ProcessStdin, ProcessStdout, StdioTransport
from mcpserve.transport.streamable_http import StreamableHttpTransport

__all__ = [
    # Base
    "Transport",
    "InputPort",
    "OutputPort",
    "ShutdownHook",
    # Adapters
    "StdioTransport",
    "ProcessStdin",
    "ProcessStdout",
    "HttpServerTransport",
    "HttpRequest",
    "SseTransport",
    "StreamableHttpTransport",
    # SSE channels
    "ChannelRegistry",
    "SseChannel",
    # Factory
    "TRANSPORTS",
    "create_transport",
    # Detection
    "DetectionResult",
    "detect_server",
]
