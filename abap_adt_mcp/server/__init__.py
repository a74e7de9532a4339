"""Protocol front-ends for the ABAP ADT MCP server."""

from abap_adt_mcp.server.websocket_server import MCPWebSocketServer

__all__ = ["MCPWebSocketServer"]
