"""Capability handlers and the tool registry."""

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.handlers.metrics import HandlerMetrics, RateLimitPolicy, RequestMetrics
from abap_adt_mcp.handlers.registry import ToolRegistry, get_tool_registry

__all__ = [
    "BaseHandler",
    "Operation",
    "HandlerMetrics",
    "RateLimitPolicy",
    "RequestMetrics",
    "ToolRegistry",
    "get_tool_registry",
]
