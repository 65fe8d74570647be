"""Capability provider contract.

The transport layer never owns tools or resources. It reaches them through a
capability provider: any object with the four methods of ``CapabilityProvider``.
Catalog entries may be the descriptor dataclasses below or plain mappings;
either way only the public MCP fields leave the server.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mcpserve.config.schema import ServerConfig

logger = logging.getLogger(__name__)


@dataclass
class ToolDescriptor:
    """Tool advertised by ``tools/list``.

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does.
        input_schema: JSON Schema for the arguments. Not interpreted here.
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=lambda: {"type": "object"})

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class ResourceDescriptor:
    """Resource advertised by ``resources/list``.

    Attributes:
        uri: Resource URI.
        name: Human-readable name.
        description: Optional description.
        mime_type: Optional MIME type.
    """

    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"uri": self.uri, "name": self.name}
        if self.description is not None:
            data["description"] = self.description
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        return data


@runtime_checkable
class CapabilityProvider(Protocol):
    """Supplies identity, catalogs and tool execution to the dispatcher.

    ``handle_tool_call`` may be a plain or an async method and may raise;
    the dispatcher turns failures into JSON-RPC internal errors.
    """

    def get_config(self) -> ServerConfig: ...

    def get_tools(self) -> Sequence[ToolDescriptor | Mapping[str, Any]]: ...

    def get_resources(self) -> Sequence[ResourceDescriptor | Mapping[str, Any]]: ...

    def handle_tool_call(
        self, name: str, arguments: dict[str, Any]
    ) -> Any | Awaitable[Any]: ...


def project_tool(tool: ToolDescriptor | Mapping[str, Any]) -> dict[str, Any]:
    """Reduce a catalog entry to ``{name, description, inputSchema}``."""
    if isinstance(tool, Mapping):
        return {
            "name": tool["name"],
            "description": tool.get("description", ""),
            "inputSchema": tool.get("inputSchema", tool.get("input_schema", {"type": "object"})),
        }
    return tool.to_dict()


def project_resource(resource: ResourceDescriptor | Mapping[str, Any]) -> dict[str, Any]:
    """Reduce a catalog entry to ``{uri, name, description?, mimeType?}``."""
    if isinstance(resource, Mapping):
        return ResourceDescriptor(
            uri=resource["uri"],
            name=resource["name"],
            description=resource.get("description"),
            mime_type=resource.get("mimeType", resource.get("mime_type")),
        ).to_dict()
    return resource.to_dict()


@dataclass
class ToolOutcome:
    """Success or failure of a single tool call.

    Exactly one of ``value`` (when ``ok``) and ``error`` (when not) is
    meaningful. ``error`` is always a plain string so it can cross any
    transport.
    """

    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any) -> ToolOutcome:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> ToolOutcome:
        return cls(ok=False, error=error)


async def invoke_tool(
    provider: CapabilityProvider,
    name: str,
    arguments: dict[str, Any],
) -> ToolOutcome:
    """Run a tool call and capture the result or the failure.

    Awaits the provider when it returns an awaitable. Never raises for
    provider errors; cancellation still propagates.
    """
    try:
        result = provider.handle_tool_call(name, arguments)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("Tool call '%s' failed: %s", name, e)
        return ToolOutcome.failure(str(e) or type(e).__name__)
    return ToolOutcome.success(result)
