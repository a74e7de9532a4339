"""MCP server exposing ABAP Development Tools (ADT) operations as tools."""

__version__ = "0.1.0"
