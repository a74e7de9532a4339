"""Tool definitions and structured results.

A tool call produces exactly one ``ToolResult``: either a ``ToolSuccess``
carrying content blocks, or a ``ToolFailure`` carrying an ``ErrorCode`` and a
message. Results are returned, not raised, so every caller sees the failure
path in its signature.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from abap_adt_mcp.errors import UNKNOWN_ERROR_MESSAGE, ErrorCode

# Largest integer a JSON consumer using IEEE-754 doubles represents exactly.
MAX_SAFE_INTEGER = 2**53 - 1


@dataclass(frozen=True)
class ToolDefinition:
    """A named, schema-described tool exposed to the calling protocol."""

    name: str
    description: str
    input_schema: Dict[str, Any] = field(default_factory=lambda: {"type": "object"})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the MCP ``tools/list`` entry format."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolSuccess:
    """Successful tool result with a sequence of typed content blocks."""

    content: List[Dict[str, str]]

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.get("text", "") for block in self.content if block.get("type") == "text")

    def to_dict(self) -> Dict[str, Any]:
        return {"content": list(self.content), "isError": False}


@dataclass(frozen=True)
class ToolFailure:
    """Failed tool result: an error kind plus a non-empty message."""

    code: ErrorCode
    message: str

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", UNKNOWN_ERROR_MESSAGE)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-RPC error object."""
        return {"code": int(self.code), "message": self.message}


ToolResult = Union[ToolSuccess, ToolFailure]


def _lossless(value: Any) -> Any:
    """Replace integers outside the double-precision safe range with strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, dict):
        return {key: _lossless(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_lossless(item) for item in value]
    return value


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Serialize a structured payload to JSON without losing integer precision."""
    return json.dumps(_lossless(payload), ensure_ascii=False, default=str)


def success_result(payload: Dict[str, Any]) -> ToolSuccess:
    """Build a success result whose single text block is ``payload`` as JSON.

    ``status: "success"`` is always present and listed first.
    """
    body = {"status": "success"}
    body.update({key: value for key, value in payload.items() if key != "status"})
    return ToolSuccess(content=[{"type": "text", "text": serialize_payload(body)}])
