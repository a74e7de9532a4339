"""stdio MCP server built on the official MCP SDK.

stdout carries protocol frames, so nothing else may be printed to it while
the server runs; logging is sent to stderr by ``main``.
"""

import logging
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from abap_adt_mcp.handlers.registry import ToolRegistry
from abap_adt_mcp.results import ToolFailure

logger = logging.getLogger(__name__)

SERVER_NAME = "abap-adt-mcp"


def list_tools(registry: ToolRegistry) -> List[types.Tool]:
    """Convert the registry catalog to SDK tool objects."""
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
        for tool in registry.list_tools()
    ]


async def call_tool(
    registry: ToolRegistry, name: str, arguments: Optional[Dict[str, Any]]
) -> List[types.TextContent]:
    """
    Dispatch one tool call.

    No caller key exists on stdio (one local client), so calls are not rate limited.

    Raises:
        McpError: Carrying the failure code and message when the tool fails
    """
    logger.info(f"[MCP] tools/call START - tool={name}")
    result = await registry.dispatch(name, arguments or {})
    if isinstance(result, ToolFailure):
        logger.info(f"[MCP] tools/call END - tool={name} status=ERROR code={int(result.code)}")
        raise McpError(types.ErrorData(code=int(result.code), message=result.message))

    logger.info(f"[MCP] tools/call END - tool={name} status=OK")
    return [types.TextContent(type="text", text=block["text"]) for block in result.content]


def create_server(registry: ToolRegistry) -> Server:
    """Create an SDK server whose tools are served by ``registry``."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def _list_tools() -> List[types.Tool]:
        return list_tools(registry)

    async def _call_tool(request: types.CallToolRequest) -> types.ServerResult:
        content = await call_tool(registry, request.params.name, request.params.arguments)
        return types.ServerResult(types.CallToolResult(content=content, isError=False))

    # McpError surfaces as a JSON-RPC error; handlers validate their own arguments
    server.request_handlers[types.CallToolRequest] = _call_tool

    return server


async def run_stdio(registry: ToolRegistry) -> None:
    """Serve ``registry`` over stdin/stdout until the client disconnects."""
    server = create_server(registry)
    logger.info(f"MCP stdio server started with {len(registry.list_names())} tools")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("MCP stdio server stopped")
