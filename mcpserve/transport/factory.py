"""Select and build the transport named in the server configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcpserve.core.errors import ConfigError
from mcpserve.transport.sse import SseTransport
from mcpserve.transport.stdio import StdioTransport
from mcpserve.transport.streamable_http import StreamableHttpTransport

if TYPE_CHECKING:
    from mcpserve.rpc.provider import CapabilityProvider
    from mcpserve.transport.base import Transport

TRANSPORTS: dict[str, type[Transport]] = {
    "stdio": StdioTransport,
    "sse": SseTransport,
    "streamable-http": StreamableHttpTransport,
}


def create_transport(provider: CapabilityProvider, **kwargs: Any) -> Transport:
    """Build the transport selected by ``provider.get_config().transport``.

    Args:
        provider: Capability provider the transport will serve.
        **kwargs: Passed through to the transport constructor (ports,
            shutdown hook, console, host/port overrides).

    Raises:
        ConfigError: If the configured transport is not supported.
    """
    transport_type = provider.get_config().transport
    transport_cls = TRANSPORTS.get(transport_type)
    if transport_cls is None:
        raise ConfigError(f"Unsupported transport: {transport_type}")
    return transport_cls(provider, **kwargs)
