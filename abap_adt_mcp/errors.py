"""Error classification for ADT tool execution.

Every failure that leaves a capability handler is one of four kinds. The
numeric values are the JSON-RPC error codes used by the MCP protocol, so a
failure can be put on the wire without translation.
"""

from enum import IntEnum
from typing import Optional

from mcp import types

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class ErrorCode(IntEnum):
    """Closed set of failure kinds returned by the dispatch core."""

    METHOD_NOT_FOUND = types.METHOD_NOT_FOUND
    INVALID_PARAMS = types.INVALID_PARAMS
    INVALID_REQUEST = types.INVALID_REQUEST
    INTERNAL_ERROR = types.INTERNAL_ERROR


class ToolError(Exception):
    """Classified failure raised inside an operation to stop it early.

    Operation bodies raise this for validation and payload resolution
    problems; the handler lifecycle turns it into a ``ToolFailure``.
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message or UNKNOWN_ERROR_MESSAGE

    def __repr__(self) -> str:
        return f"ToolError(code={self.code.name}, message={self.message!r})"


class DuplicateToolError(Exception):
    """Raised at startup when two handlers declare the same tool name."""

    def __init__(self, tool_name: str, owner: str, duplicate: str):
        super().__init__(
            f"Tool '{tool_name}' declared by {duplicate} is already registered by {owner}"
        )
        self.tool_name = tool_name
        self.owner = owner
        self.duplicate = duplicate


def error_message(error: Optional[BaseException]) -> str:
    """Return the human-readable message of ``error``, never empty."""
    if error is None:
        return UNKNOWN_ERROR_MESSAGE
    message = getattr(error, "message", None)
    if not isinstance(message, str) or not message:
        message = str(error)
    return message.strip() or UNKNOWN_ERROR_MESSAGE
