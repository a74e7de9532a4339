"""WebSocket MCP server.

Serves the tool registry as JSON-RPC 2.0 over a WebSocket connection, for
clients that reach the ADT server over the network instead of stdio.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import web
from aiohttp.web_log import AccessLogger
from mcp import types

from abap_adt_mcp import __version__
from abap_adt_mcp.handlers.registry import ToolRegistry
from abap_adt_mcp.results import ToolFailure

logger = logging.getLogger(__name__)

PARSE_ERROR = types.PARSE_ERROR


class _HealthFilterAccessLogger(AccessLogger):
    """Suppress access logs for /health endpoint to reduce noise."""

    def log(self, request, response, req_time):
        if request.path == "/health":
            return
        super().log(request, response, req_time)


@dataclass
class MCPServerInfo:
    """MCP server information."""

    name: str = "abap-adt-mcp"
    version: str = __version__
    protocol_version: str = "2024-11-05"


class JsonRpcError(Exception):
    """Error answered with a JSON-RPC ``error`` object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = int(code)
        self.message = message


class MCPWebSocketServer:
    """
    WebSocket-based MCP Server.

    Implements the MCP protocol over WebSocket on top of a :class:`ToolRegistry`.

    Features:
    - JSON-RPC 2.0 over WebSocket
    - Tool discovery and dispatch through the registry
    - Per-client rate limiting keyed by remote address
    - Graceful shutdown

    Usage:
        server = MCPWebSocketServer(registry, host="0.0.0.0", port=8765)
        await server.start()
    """

    def __init__(self, registry: ToolRegistry, host: str = "0.0.0.0", port: int = 8765):
        """
        Initialize the MCP WebSocket server.

        Args:
            registry: Tool registry serving tools/list and tools/call
            host: Host to bind to
            port: Port to listen on
        """
        self.registry = registry
        self.host = host
        self.port = port

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

        self._clients: Dict[str, web.WebSocketResponse] = {}
        self._server_info = MCPServerInfo()
        self._shutdown_event = asyncio.Event()

    def create_app(self) -> web.Application:
        """Build the aiohttp application (WebSocket on ``/``, health on ``/health``)."""
        app = web.Application()
        app.router.add_get("/", self._handle_websocket)
        app.router.add_get("/health", self._handle_health)
        return app

    async def start(self) -> None:
        """Start the WebSocket server."""
        self._app = self.create_app()
        self._runner = web.AppRunner(
            self._app,
            access_log=logging.getLogger("aiohttp.access"),
            access_log_class=_HealthFilterAccessLogger,
        )
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        logger.info(f"MCP WebSocket server started on ws://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the WebSocket server."""
        logger.info("Stopping MCP WebSocket server...")

        for client_id, ws in list(self._clients.items()):
            try:
                await ws.close(code=aiohttp.WSCloseCode.GOING_AWAY, message=b"Server shutdown")
            except (ConnectionResetError, RuntimeError) as e:
                logger.error(f"Error closing client {client_id}: {e}")
        self._clients.clear()

        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

        self._shutdown_event.set()
        logger.info("MCP WebSocket server stopped")

    async def wait_closed(self) -> None:
        """Wait for the server to close."""
        await self._shutdown_event.wait()

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle health check requests."""
        return web.json_response(
            {
                "status": "healthy",
                "server": self._server_info.name,
                "version": self._server_info.version,
                "tools_count": len(self.registry.list_names()),
                "clients_count": len(self._clients),
            }
        )

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Handle an incoming WebSocket connection."""
        ws = web.WebSocketResponse(heartbeat=300.0)
        await ws.prepare(request)

        client_id = f"client-{id(ws)}"
        remote = request.remote or client_id
        self._clients[client_id] = ws
        logger.info(
            f"[MCP] Client CONNECTED - id={client_id} remote={remote} "
            f"user_agent={request.headers.get('User-Agent', 'unknown')}"
        )

        message_count = 0
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    message_count += 1
                    try:
                        data = json.loads(msg.data)
                    except json.JSONDecodeError as e:
                        logger.warning(f"[MCP] Invalid JSON from client {client_id}: {e}")
                        await ws.send_json(
                            {
                                "jsonrpc": "2.0",
                                "error": {"code": PARSE_ERROR, "message": f"Parse error: {e}"},
                                "id": None,
                            }
                        )
                        continue

                    response = await self._handle_message(data, caller=remote)
                    if response is None:
                        continue
                    if ws.closed:
                        logger.debug(f"[MCP] WS closed before response for {client_id}")
                        break
                    try:
                        await ws.send_json(response)
                    except (ConnectionResetError, RuntimeError) as send_err:
                        logger.debug(f"[MCP] Cannot send response to {client_id}: {send_err}")
                        break
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"[MCP] WebSocket error for {client_id}: {ws.exception()}")
                    break
        except asyncio.CancelledError:
            logger.debug(f"[MCP] Client handler cancelled: {client_id}")
            raise
        finally:
            self._clients.pop(client_id, None)
            logger.info(
                f"[MCP] Client DISCONNECTED - id={client_id} messages_processed={message_count}"
            )

        return ws

    async def _handle_message(self, data: Any, caller: Optional[str] = None) -> Optional[dict]:
        """
        Handle incoming JSON-RPC message.

        Args:
            data: Parsed JSON-RPC message
            caller: Rate limit key of the sending client

        Returns:
            Response dict or None for notifications
        """
        if not isinstance(data, dict):
            return {
                "jsonrpc": "2.0",
                "error": {"code": types.INVALID_REQUEST, "message": "Invalid Request"},
                "id": None,
            }

        method = data.get("method")
        params = data.get("params") or {}
        request_id = data.get("id")

        if not isinstance(params, dict):
            if request_id is None:
                return None
            return {
                "jsonrpc": "2.0",
                "error": {"code": types.INVALID_PARAMS, "message": "params must be an object"},
                "id": request_id,
            }

        # Notification (no id) - no response expected
        if request_id is None and method:
            await self._handle_notification(method, params)
            return None

        try:
            result = await self._dispatch_method(method, params, caller)
            return {"jsonrpc": "2.0", "result": result, "id": request_id}
        except JsonRpcError as e:
            return {
                "jsonrpc": "2.0",
                "error": {"code": e.code, "message": e.message},
                "id": request_id,
            }
        except Exception as e:
            logger.error(f"Error handling method {method}: {e}", exc_info=True)
            return {
                "jsonrpc": "2.0",
                "error": {"code": types.INTERNAL_ERROR, "message": str(e) or "Unknown error"},
                "id": request_id,
            }

    async def _handle_notification(self, method: str, params: dict) -> None:
        """Handle JSON-RPC notifications."""
        if method == "notifications/initialized":
            logger.info("Client initialized")
        else:
            logger.debug(f"Received notification: {method}")

    async def _dispatch_method(self, method: Optional[str], params: dict, caller: Optional[str]) -> Any:
        """Dispatch a JSON-RPC method to its handler."""
        if method == "initialize":
            return await self._handle_initialize(params)
        elif method == "tools/list":
            return await self._handle_list_tools()
        elif method == "tools/call":
            return await self._handle_call_tool(params, caller)
        elif method == "ping":
            return {}
        raise JsonRpcError(types.METHOD_NOT_FOUND, f"Unknown method: {method}")

    async def _handle_initialize(self, params: dict) -> dict:
        """Handle MCP initialize request."""
        client_info = params.get("clientInfo", {})
        logger.info(
            f"[MCP] initialize - client={client_info.get('name', 'unknown')} "
            f"version={client_info.get('version', 'unknown')} "
            f"protocol={params.get('protocolVersion', 'unknown')}"
        )
        return {
            "protocolVersion": self._server_info.protocol_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {
                "name": self._server_info.name,
                "version": self._server_info.version,
            },
        }

    async def _handle_list_tools(self) -> dict:
        """Handle tools/list request."""
        tools = [tool.to_dict() for tool in self.registry.list_tools()]
        logger.info(f"[MCP] tools/list - Returning {len(tools)} tools")
        return {"tools": tools}

    async def _handle_call_tool(self, params: dict, caller: Optional[str]) -> dict:
        """Handle tools/call request; a tool failure becomes a JSON-RPC error."""
        tool_name = params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            raise JsonRpcError(types.INVALID_PARAMS, "Tool name is required")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise JsonRpcError(types.INVALID_PARAMS, "Tool arguments must be an object")

        logger.info(f"[MCP] tools/call START - tool={tool_name}")
        logger.debug(f"[MCP] tools/call arguments: {list(arguments)}")
        start_time = time.perf_counter()

        result = await self.registry.dispatch(tool_name, arguments, caller=caller)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if isinstance(result, ToolFailure):
            logger.info(
                f"[MCP] tools/call END - tool={tool_name} status=ERROR "
                f"code={int(result.code)} elapsed={elapsed_ms:.1f}ms"
            )
            raise JsonRpcError(result.code, result.message)

        logger.info(f"[MCP] tools/call END - tool={tool_name} status=OK elapsed={elapsed_ms:.1f}ms")
        return result.to_dict()
