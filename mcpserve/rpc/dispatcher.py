"""MCP method dispatcher.

Routes decoded JSON-RPC requests to the four MCP methods this server
implements and turns every outcome into a response envelope:

- initialize      -> server identity and capabilities
- tools/list      -> provider tool catalog
- tools/call      -> provider tool execution
- resources/list  -> provider resource catalog

Anything else yields -32601. Handler failures are caught here and reported as
-32603 with the failure message in ``error.data``, so a misbehaving provider
can never take a transport down. The dispatcher holds no per-request state and
is safe to share between concurrent connections.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from mcpserve.core.errors import (
    InvalidParamsError,
    McpError,
    ProtocolError,
    ToolCallError,
)
from mcpserve.rpc.protocol import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    decode,
    make_error_response,
    make_success_response,
)
from mcpserve.rpc.provider import (
    CapabilityProvider,
    invoke_tool,
    project_resource,
    project_tool,
)
from mcpserve.rpc.types import Request, Response

logger = logging.getLogger(__name__)

# Type alias for handler functions
Handler = Callable[[Any], Coroutine[Any, Any, dict[str, Any]]]

SERVER_CAPABILITIES: dict[str, Any] = {"tools": {}, "resources": {}}


class Dispatcher:
    """Routes JSON-RPC requests to MCP method handlers.

    Attributes:
        protocol_version: Version string echoed by ``initialize``. Each
            transport passes its own constant; it is never negotiated.
    """

    def __init__(self, provider: CapabilityProvider, protocol_version: str) -> None:
        self._provider = provider
        self.protocol_version = protocol_version
        self._handlers: dict[str, Handler] = {
            "initialize": self._handle_initialize,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            "resources/list": self._handle_resources_list,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._handlers)

    async def handle_frame(self, frame: bytes | str) -> Response | None:
        """Decode one frame and dispatch it.

        Never raises for bad input: undecodable frames become error responses
        (-32700 with id null, or -32600 with whatever id could be read).

        Returns:
            The response to write back, or None when nothing is owed (a
            notification, or a response sent to us by the peer).
        """
        try:
            message = decode(frame)
        except ProtocolError as e:
            logger.debug("Rejected frame: %s", e.message)
            return make_error_response(e.request_id, e.code, data=e.message)

        if isinstance(message, Response):
            logger.debug("Ignoring response from peer (id=%r)", message.id)
            return None
        return await self.dispatch(message)

    async def dispatch(self, request: Request) -> Response | None:
        """Dispatch a request to the appropriate handler.

        Args:
            request: The parsed JSON-RPC request.

        Returns:
            A Response object, or None for notifications (requests without id).
        """
        handler = self._handlers.get(request.method)
        if handler is None:
            if request.id is None:
                logger.debug("Ignoring notification: %s", request.method)
                return None
            return make_error_response(request.id, METHOD_NOT_FOUND, data=request.method)

        try:
            result = await handler(request.params)
        except ProtocolError as e:
            if request.id is None:
                return None
            return make_error_response(request.id, e.code, data=e.message)
        except McpError as e:
            if request.id is None:
                return None
            return make_error_response(request.id, INTERNAL_ERROR, data=e.message)
        except Exception as e:
            logger.error(
                "Unexpected error dispatching method '%s': %s",
                request.method,
                e,
                exc_info=True,
            )
            if request.id is None:
                return None
            return make_error_response(
                request.id, INTERNAL_ERROR, data=f"{type(e).__name__}: {e}"
            )

        if request.id is None:
            return None
        return make_success_response(request.id, result)

    async def _handle_initialize(self, params: Any) -> dict[str, Any]:
        if isinstance(params, dict):
            client_info = params.get("clientInfo") or {}
            logger.info(
                "initialize from client %r (requested protocol %r, serving %s)",
                client_info.get("name") if isinstance(client_info, dict) else client_info,
                params.get("protocolVersion"),
                self.protocol_version,
            )
        config = self._provider.get_config()
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {key: dict(value) for key, value in SERVER_CAPABILITIES.items()},
            "serverInfo": {"name": config.name, "version": config.version},
        }

    async def _handle_tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": [project_tool(tool) for tool in self._provider.get_tools()]}

    async def _handle_tools_call(self, params: Any) -> dict[str, Any]:
        """Run a tool and wrap its result as MCP text content.

        Raises:
            InvalidParamsError: If params.name is missing or arguments is not an object.
            ToolCallError: If the provider fails (including unknown tool names).
        """
        if not isinstance(params, dict):
            raise InvalidParamsError("tools/call params must be an object")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Missing required parameter: name")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError(
                f"arguments must be an object, got: {type(arguments).__name__}"
            )

        outcome = await invoke_tool(self._provider, name, arguments)
        if not outcome.ok:
            raise ToolCallError(name, outcome.error or "Tool call failed")

        text = json.dumps(outcome.value, indent=2, ensure_ascii=False, default=str)
        return {"content": [{"type": "text", "text": text}]}

    async def _handle_resources_list(self, params: Any) -> dict[str, Any]:
        return {
            "resources": [project_resource(res) for res in self._provider.get_resources()]
        }
