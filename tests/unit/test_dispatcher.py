"""Unit tests for mcpserve.rpc.dispatcher."""

import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from mcpserve.config.schema import ServerConfig
from mcpserve.rpc.dispatcher import Dispatcher
from mcpserve.rpc.provider import ResourceDescriptor, ToolDescriptor
from mcpserve.rpc.types import Request


class StubProvider:
    """Provider with configurable catalogs and tool behavior."""

    def __init__(
        self,
        tools: list[Any] | None = None,
        resources: list[Any] | None = None,
        tool_impl: Any = None,
    ) -> None:
        self.config = ServerConfig(name="stub", version="9.9.9")
        self.tools = tools if tools is not None else [ToolDescriptor(name="echo")]
        self.resources = resources if resources is not None else []
        self.tool_impl = tool_impl or (lambda name, args: args)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get_config(self) -> ServerConfig:
        return self.config

    def get_tools(self) -> list[Any]:
        return self.tools

    def get_resources(self) -> list[Any]:
        return self.resources

    def handle_tool_call(self, name: str, arguments: dict[str, Any]) -> Any:
        self.calls.append((name, arguments))
        return self.tool_impl(name, arguments)


def req(method: str, params: Any = None, id: Any = 1) -> Request:
    return Request(jsonrpc="2.0", method=method, params=params, id=id)


class TestInitialize:
    """Tests for the initialize method."""

    @pytest.mark.asyncio
    async def test_returns_identity_and_capabilities(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2025-03-26")

        response = await dispatcher.dispatch(
            req("initialize", {"clientInfo": {"name": "t", "version": "1"}})
        )

        assert response is not None
        assert response.error is None
        assert response.result == {
            "protocolVersion": "2025-03-26",
            "capabilities": {"tools": {}, "resources": {}},
            "serverInfo": {"name": "stub", "version": "9.9.9"},
        }

    @pytest.mark.asyncio
    async def test_protocol_version_is_not_negotiated(self):
        """The transport's version is returned whatever the client asks for."""
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")

        response = await dispatcher.dispatch(
            req("initialize", {"protocolVersion": "2099-01-01"})
        )

        assert response.result["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_params_optional(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")
        response = await dispatcher.dispatch(req("initialize"))
        assert response.result["serverInfo"]["name"] == "stub"


class TestToolsList:
    """Tests for tools/list."""

    @pytest.mark.asyncio
    async def test_projects_public_fields_only(self):
        provider = StubProvider(
            tools=[
                ToolDescriptor(name="a", description="A", input_schema={"type": "object"}),
                {
                    "name": "b",
                    "description": "B",
                    "inputSchema": {"type": "object", "properties": {}},
                    "handler": object(),
                },
            ]
        )
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("tools/list"))

        assert response.result == {
            "tools": [
                {"name": "a", "description": "A", "inputSchema": {"type": "object"}},
                {
                    "name": "b",
                    "description": "B",
                    "inputSchema": {"type": "object", "properties": {}},
                },
            ]
        }

    @pytest.mark.asyncio
    async def test_empty_catalog(self):
        dispatcher = Dispatcher(StubProvider(tools=[]), protocol_version="2024-11-05")
        response = await dispatcher.dispatch(req("tools/list"))
        assert response.result == {"tools": []}


class TestToolsCall:
    """Tests for tools/call."""

    @pytest.mark.asyncio
    async def test_result_wrapped_as_pretty_json_text(self):
        provider = StubProvider(tool_impl=lambda name, args: {"echo": args["message"]})
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(
            req("tools/call", {"name": "echo", "arguments": {"message": "hi"}})
        )

        assert response.error is None
        assert response.result == {
            "content": [{"type": "text", "text": json.dumps({"echo": "hi"}, indent=2)}]
        }
        assert provider.calls == [("echo", {"message": "hi"})]

    @pytest.mark.asyncio
    async def test_arguments_default_to_empty_object(self):
        provider = StubProvider()
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        await dispatcher.dispatch(req("tools/call", {"name": "echo"}))

        assert provider.calls == [("echo", {})]

    @pytest.mark.asyncio
    async def test_async_provider_is_awaited(self):
        async def impl(name, args):
            return args["a"] + args["b"]

        dispatcher = Dispatcher(StubProvider(tool_impl=impl), protocol_version="2024-11-05")

        response = await dispatcher.dispatch(
            req("tools/call", {"name": "add", "arguments": {"a": 2, "b": 3}})
        )

        assert response.result["content"][0]["text"] == "5"

    @pytest.mark.asyncio
    async def test_provider_failure_is_internal_error_with_message(self):
        def impl(name, args):
            raise ValueError(f"Unknown tool: {name}")

        dispatcher = Dispatcher(StubProvider(tool_impl=impl), protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("tools/call", {"name": "nope"}, id=4))

        assert response.id == 4
        assert response.result is None
        assert response.error == {
            "code": -32603,
            "message": "Internal error",
            "data": "Unknown tool: nope",
        }

    @pytest.mark.asyncio
    async def test_missing_name_is_invalid_params(self):
        provider = StubProvider()
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("tools/call", {"arguments": {}}))

        assert response.error["code"] == -32602
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_non_object_arguments_is_invalid_params(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")
        response = await dispatcher.dispatch(
            req("tools/call", {"name": "echo", "arguments": [1, 2]})
        )
        assert response.error["code"] == -32602


class TestResourcesList:
    """Tests for resources/list."""

    @pytest.mark.asyncio
    async def test_optional_fields_omitted(self):
        provider = StubProvider(
            resources=[
                ResourceDescriptor(uri="file:///a", name="A"),
                {"uri": "file:///b", "name": "B", "description": "d", "mimeType": "text/plain"},
            ]
        )
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("resources/list"))

        assert response.result == {
            "resources": [
                {"uri": "file:///a", "name": "A"},
                {"uri": "file:///b", "name": "B", "description": "d", "mimeType": "text/plain"},
            ]
        }


class TestRouting:
    """Tests for method routing and error mapping."""

    @pytest.mark.asyncio
    async def test_unknown_method_echoes_id(self):
        provider = MagicMock()
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("prompts/list", id="x-1"))

        assert response.id == "x-1"
        assert response.error["code"] == -32601
        assert response.error["message"] == "Method not found"
        provider.get_tools.assert_not_called()
        provider.get_resources.assert_not_called()
        provider.handle_tool_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")
        assert await dispatcher.dispatch(req("notifications/initialized", id=None)) is None
        assert await dispatcher.dispatch(req("tools/list", id=None)) is None

    @pytest.mark.asyncio
    async def test_unexpected_handler_error_is_internal_error(self):
        provider = StubProvider()
        provider.get_tools = MagicMock(side_effect=RuntimeError("boom"))
        dispatcher = Dispatcher(provider, protocol_version="2024-11-05")

        response = await dispatcher.dispatch(req("tools/list"))

        assert response.error["code"] == -32603
        assert response.error["message"] == "Internal error"
        assert response.error["data"] == "RuntimeError: boom"

    def test_routing_table(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")
        assert dispatcher.methods == ["initialize", "tools/list", "tools/call", "resources/list"]


class TestHandleFrame:
    """Tests for handle_frame(): decode plus dispatch."""

    @pytest.mark.asyncio
    async def test_parse_error_has_null_id(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")

        response = await dispatcher.handle_frame(b"not json at all")

        assert response.id is None
        assert response.error["code"] == -32700
        assert response.error["message"] == "Parse error"
        assert "data" in response.error

    @pytest.mark.asyncio
    async def test_invalid_envelope_echoes_recovered_id(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")

        response = await dispatcher.handle_frame(b'{"jsonrpc":"1.0","id":7,"method":"x"}')

        assert response.id == 7
        assert response.error["code"] == -32600

    @pytest.mark.asyncio
    async def test_peer_response_ignored(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")
        assert await dispatcher.handle_frame(b'{"jsonrpc":"2.0","id":1,"result":{}}') is None

    @pytest.mark.asyncio
    async def test_dispatches_valid_request(self):
        dispatcher = Dispatcher(StubProvider(), protocol_version="2024-11-05")

        response = await dispatcher.handle_frame(b'{"jsonrpc":"2.0","id":1,"method":"tools/list"}')

        assert response.result == {
            "tools": [{"name": "echo", "description": "", "inputSchema": {"type": "object"}}]
        }
