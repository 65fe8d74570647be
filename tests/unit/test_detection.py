"""Unit tests for mcpserve.transport.detection.detect_server()."""

import json

import httpx
import pytest

from mcpserve.transport.detection import DetectionResult, detect_server


def patch_client(mp: pytest.MonkeyPatch, handler) -> None:
    """Route every httpx.AsyncClient through a MockTransport."""
    transport = httpx.MockTransport(handler)
    original_init = httpx.AsyncClient.__init__

    def patched_init(self, *args, **kwargs):
        kwargs["transport"] = transport
        original_init(self, *args, **kwargs)

    mp.setattr(httpx.AsyncClient, "__init__", patched_init)


MCP_INITIALIZE_RESPONSE = {
    "jsonrpc": "2.0",
    "id": 1,
    "result": {
        "protocolVersion": "2025-03-26",
        "capabilities": {"tools": {}, "resources": {}},
        "serverInfo": {"name": "other", "version": "1.0"},
    },
}


class TestDetectServer:
    """Tests for detect_server()."""

    @pytest.mark.asyncio
    async def test_returns_no_server_when_connection_refused(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused")

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(9999)

        assert result == DetectionResult.NO_SERVER

    @pytest.mark.asyncio
    async def test_returns_mcp_server_for_initialize_result(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=MCP_INITIALIZE_RESPONSE)

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(3000, path="/messages")

        assert result == DetectionResult.MCP_SERVER
        assert seen[0].url.path == "/messages"
        body = json.loads(seen[0].content)
        assert body["method"] == "initialize"
        assert body["id"] == 1

    @pytest.mark.asyncio
    async def test_returns_other_service_for_html(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>hello</html>")

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(8080)

        assert result == DetectionResult.OTHER_SERVICE

    @pytest.mark.asyncio
    async def test_returns_other_service_for_json_rpc_error(self):
        """A JSON-RPC server that does not speak MCP is not an MCP server."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "nope"}},
            )

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(8080)

        assert result == DetectionResult.OTHER_SERVICE

    @pytest.mark.asyncio
    async def test_returns_other_service_for_404(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "Not found"})

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(8080)

        assert result == DetectionResult.OTHER_SERVICE

    @pytest.mark.asyncio
    async def test_returns_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out")

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(3000)

        assert result == DetectionResult.TIMEOUT

    @pytest.mark.asyncio
    async def test_returns_error_for_other_failures(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("garbage")

        with pytest.MonkeyPatch.context() as mp:
            patch_client(mp, handler)
            result = await detect_server(3000)

        assert result == DetectionResult.ERROR
