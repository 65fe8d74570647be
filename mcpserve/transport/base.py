"""Transport base class and I/O ports.

A transport owns one connection lifecycle and one framing rule; all of them
feed the same Dispatcher. Process-level side effects (reading stdin, writing
stdout, exiting) are reached only through the ports defined here so every
transport can run against in-memory streams.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from mcpserve.core.console import get_console
from mcpserve.rpc.dispatcher import Dispatcher

if TYPE_CHECKING:
    from rich.console import Console

    from mcpserve.rpc.provider import CapabilityProvider
    from mcpserve.rpc.types import Message

# Called with the exit code once a transport decides the host should exit.
ShutdownHook = Callable[[int], None]


class InputPort(Protocol):
    """Source of raw input chunks. ``read`` returns b"" at end of stream.

    A port may also define ``close()``; the stdio transport calls it on stop.
    """

    async def read(self, n: int = -1) -> bytes: ...


class OutputPort(Protocol):
    """Sink for raw output. asyncio.StreamWriter satisfies this."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class Transport(ABC):
    """Abstract base class for MCP server transports.

    Subclasses set ``protocol_version`` and ``name``; the dispatcher is built
    from the provider with that version.
    """

    protocol_version: str = "2024-11-05"
    name: str = "transport"

    def __init__(
        self,
        provider: CapabilityProvider,
        console: Console | None = None,
    ) -> None:
        self.provider = provider
        self.config = provider.get_config()
        self.dispatcher = Dispatcher(provider, self.protocol_version)
        self.console = console if console is not None else get_console()
        self._stopped = asyncio.Event()

    @abstractmethod
    async def start(self) -> None:
        """Begin serving. Returns once the transport is accepting input."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop serving and release resources."""

    @abstractmethod
    async def send(self, message: Message) -> None:
        """Push a server-initiated message through the transport."""

    async def wait_stopped(self) -> None:
        """Block until ``stop()`` has completed."""
        await self._stopped.wait()

    @property
    def is_stopped(self) -> bool:
        return self._stopped.is_set()

    async def __aenter__(self) -> Transport:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()
