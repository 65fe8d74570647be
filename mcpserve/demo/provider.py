"""Demo capability provider.

Served when no ``--provider`` is given. Handy for trying a client against
the server and used throughout the test suite.

Tools:
    echo      Return the message argument unchanged
    add       Sum two numbers
    get_time  Current local time in ISO 8601

Resources:
    file:///readme.txt   text/plain
    file:///config.json  application/json
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from mcpserve.config.schema import ServerConfig
from mcpserve.rpc.provider import ResourceDescriptor, ToolDescriptor

TOOLS = [
    ToolDescriptor(
        name="echo",
        description="Echo back the input message",
        input_schema={
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to echo"}
            },
            "required": ["message"],
        },
    ),
    ToolDescriptor(
        name="add",
        description="Add two numbers",
        input_schema={
            "type": "object",
            "properties": {
                "a": {"type": "number", "description": "First number"},
                "b": {"type": "number", "description": "Second number"},
            },
            "required": ["a", "b"],
        },
    ),
    ToolDescriptor(
        name="get_time",
        description="Get current date and time",
        input_schema={"type": "object", "properties": {}},
    ),
]

RESOURCES = [
    ResourceDescriptor(
        uri="file:///readme.txt",
        name="README",
        description="Project readme file",
        mime_type="text/plain",
    ),
    ResourceDescriptor(
        uri="file:///config.json",
        name="Configuration",
        description="Server configuration",
        mime_type="application/json",
    ),
]


class DemoProvider:
    """Capability provider with three toy tools and two resources."""

    def __init__(self, config: ServerConfig | None = None) -> None:
        self._config = config if config is not None else ServerConfig()

    def get_config(self) -> ServerConfig:
        return self._config

    def get_tools(self) -> list[ToolDescriptor]:
        return list(TOOLS)

    def get_resources(self) -> list[ResourceDescriptor]:
        return list(RESOURCES)

    def handle_tool_call(self, name: str, arguments: dict[str, Any]) -> Any:
        if name == "echo":
            if "message" not in arguments:
                raise ValueError("echo requires 'message'")
            return {"message": arguments["message"]}
        elif name == "add":
            a, b = arguments.get("a"), arguments.get("b")
            if not _is_number(a) or not _is_number(b):
                raise ValueError("add requires numeric 'a' and 'b'")
            return {"sum": a + b}
        elif name == "get_time":
            return {"time": datetime.now().isoformat()}
        else:
            raise ValueError(f"Unknown tool: {name}")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
