"""mcpserve - Model Context Protocol server transports.

One JSON-RPC 2.0 codec and method dispatcher, three transport bindings
(stdio, HTTP + SSE, streamable HTTP), selected from configuration.
"""

__version__ = "0.1.0"
