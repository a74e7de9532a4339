"""Tool registry for the ADT MCP server.

Aggregates the tools of every capability handler and routes tool calls to
the owning handler.
"""

import logging
from typing import Any, Dict, List, Optional

from abap_adt_mcp.adt.session import SessionClient
from abap_adt_mcp.config import Settings
from abap_adt_mcp.errors import DuplicateToolError, ErrorCode
from abap_adt_mcp.handlers.auth import AuthHandlers
from abap_adt_mcp.handlers.base import BaseHandler
from abap_adt_mcp.handlers.code_analysis import CodeAnalysisHandlers
from abap_adt_mcp.handlers.discovery import DiscoveryHandlers
from abap_adt_mcp.handlers.health import HealthHandlers
from abap_adt_mcp.handlers.metrics import RequestMetrics
from abap_adt_mcp.handlers.nodes import NodeHandlers
from abap_adt_mcp.handlers.object_deletion import ObjectDeletionHandlers
from abap_adt_mcp.handlers.object_lock import ObjectLockHandlers
from abap_adt_mcp.handlers.object_management import ObjectManagementHandlers
from abap_adt_mcp.handlers.object_source import ObjectSourceHandlers
from abap_adt_mcp.handlers.objects import ObjectHandlers
from abap_adt_mcp.handlers.query import QueryHandlers
from abap_adt_mcp.handlers.transports import TransportHandlers
from abap_adt_mcp.results import ToolDefinition, ToolFailure, ToolResult

logger = logging.getLogger(__name__)

HANDLER_CLASSES = [
    AuthHandlers,
    ObjectLockHandlers,
    ObjectSourceHandlers,
    ObjectHandlers,
    TransportHandlers,
    ObjectManagementHandlers,
    ObjectDeletionHandlers,
    CodeAnalysisHandlers,
    NodeHandlers,
    DiscoveryHandlers,
    QueryHandlers,
]


class ToolRegistry:
    """
    Registry of capability handlers.

    The name to handler table is filled once at startup. Tool names are
    unique across handlers; a duplicate is rejected when registered.
    """

    def __init__(self):
        self._handlers: List[BaseHandler] = []
        self._routes: Dict[str, BaseHandler] = {}

    def register(self, handler: BaseHandler) -> None:
        """
        Register a handler and all tools it declares.

        Raises:
            DuplicateToolError: If a tool name is already owned by another handler
        """
        tools = handler.get_tools()
        seen = set()
        for tool in tools:
            owner = self._routes.get(tool.name)
            if owner is not None:
                raise DuplicateToolError(tool.name, owner.name, handler.name)
            if tool.name in seen:
                raise DuplicateToolError(tool.name, handler.name, handler.name)
            seen.add(tool.name)

        self._handlers.append(handler)
        for tool in tools:
            self._routes[tool.name] = handler
        logger.debug(f"Registered {handler.name}: {[tool.name for tool in tools]}")

    def get(self, name: str) -> Optional[BaseHandler]:
        """Get the handler owning a tool."""
        return self._routes.get(name)

    @property
    def handlers(self) -> List[BaseHandler]:
        return list(self._handlers)

    def list_tools(self) -> List[ToolDefinition]:
        """All tools, in handler registration order then declaration order."""
        tools: List[ToolDefinition] = []
        for handler in self._handlers:
            tools.extend(handler.get_tools())
        return tools

    def list_names(self) -> List[str]:
        return [tool.name for tool in self.list_tools()]

    async def dispatch(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        caller: Optional[str] = None,
    ) -> ToolResult:
        """
        Route a tool call to its handler.

        Args:
            name: Tool name
            arguments: Tool arguments
            caller: Caller identity for rate limiting; None skips the gate

        Returns:
            The handler's result, unchanged
        """
        handler = self._routes.get(name)
        if handler is None:
            return ToolFailure(ErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}")

        if caller is not None:
            rejection = handler.check_rate_limit(caller)
            if rejection is not None:
                return rejection

        return await handler.handle(name, arguments)

    def metrics(self) -> Dict[str, RequestMetrics]:
        """Snapshot of every handler's metrics, keyed by handler name."""
        return {handler.name: handler.get_metrics() for handler in self._handlers}


def get_tool_registry(client: SessionClient, settings: Optional[Settings] = None) -> ToolRegistry:
    """
    Create and populate a tool registry with every capability handler.

    Args:
        client: Shared session client injected into all handlers
        settings: Rate limit configuration; defaults apply when omitted

    Returns:
        Populated tool registry
    """
    options: Dict[str, Any] = {}
    if settings is not None:
        options = {
            "rate_limit": settings.rate_limit,
            "rate_limit_enabled": settings.rate_limit_enabled,
        }

    registry = ToolRegistry()
    for handler_class in HANDLER_CLASSES:
        registry.register(handler_class(client, **options))
    registry.register(HealthHandlers(client, metrics_provider=registry.metrics, **options))

    logger.info(f"Tool registry initialized with {len(registry.list_names())} tools")
    return registry
