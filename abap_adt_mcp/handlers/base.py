"""Base class for capability handlers.

A capability handler owns a slice of the tool catalog and the logic to run
each of its tools against the shared ADT session client. Every tool call goes
through :meth:`BaseHandler.execute`, which applies the same request lifecycle:

1. record a monotonic start time
2. validate the arguments against the tool's input schema
3. run the operation (exclusive-input checks, payload resolution, exactly one
   session client call, payload formatting)
4. record the outcome in the handler metrics, on every path
5. return ``ToolSuccess`` or a classified ``ToolFailure``
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Tuple

import aiofiles
import aiofiles.os
from jsonschema import Draft7Validator

from abap_adt_mcp.adt.session import SessionClient
from abap_adt_mcp.errors import ErrorCode, ToolError, error_message
from abap_adt_mcp.handlers.metrics import (
    DEFAULT_RATE_LIMIT,
    HandlerMetrics,
    RateLimitPolicy,
    RequestMetrics,
)
from abap_adt_mcp.results import ToolDefinition, ToolFailure, ToolResult, success_result

RATE_LIMIT_MESSAGE = "Rate limit exceeded"


class Operation(NamedTuple):
    """A tool's business logic plus the phrase used in its failure messages.

    ``alternatives`` names an (inline, reference) argument pair of which
    exactly one must be supplied.
    """

    description: str
    run: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]
    alternatives: Optional[Tuple[str, str]] = None


def _is_given(value: Any) -> bool:
    return value is not None and value != ""


class BaseHandler(ABC):
    """
    Abstract capability handler.

    Subclasses declare their tools in :meth:`get_tools` and map each tool
    name to an :class:`Operation` in :meth:`operations`. The session client is
    injected and shared; handlers never create or close it.
    """

    #: Noun used in "Unknown <namespace> tool" messages
    namespace: str = "capability"

    def __init__(
        self,
        client: SessionClient,
        rate_limit: str = DEFAULT_RATE_LIMIT,
        rate_limit_enabled: bool = True,
    ):
        """
        Initialize the handler.

        Args:
            client: Shared ADT session client
            rate_limit: Per-caller request gate in `limits` notation
            rate_limit_enabled: Whether the request gate is applied
        """
        self.client = client
        self.name = type(self).__name__
        self.logger = logging.getLogger(f"abap_adt_mcp.handlers.{self.name}")
        self.metrics = HandlerMetrics(self.name)
        self.rate_limiter = RateLimitPolicy(rate_limit, enabled=rate_limit_enabled)
        self._operations = self.operations()
        self._validators: Dict[str, Draft7Validator] = {}

    @abstractmethod
    def get_tools(self) -> List[ToolDefinition]:
        """Tools declared by this handler, in a fixed order."""

    @abstractmethod
    def operations(self) -> Dict[str, Operation]:
        """Map each declared tool name to its operation."""

    async def handle(self, tool_name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """
        Run a tool owned by this handler.

        Args:
            tool_name: Tool name
            arguments: Tool arguments from the caller

        Returns:
            ToolSuccess, or ToolFailure (METHOD_NOT_FOUND for names this
            handler does not own)
        """
        operation = self._operations.get(tool_name)
        if operation is None:
            return ToolFailure(
                ErrorCode.METHOD_NOT_FOUND, f"Unknown {self.namespace} tool: {tool_name}"
            )
        return await self.execute(tool_name, arguments or {}, operation)

    async def execute(
        self, tool_name: str, arguments: Dict[str, Any], operation: Operation
    ) -> ToolResult:
        """Run ``operation`` through the request lifecycle."""
        start_time = time.perf_counter()
        succeeded = False
        try:
            if operation.alternatives:
                self.require_exactly_one(arguments, *operation.alternatives)
            self.validate_arguments(tool_name, arguments)
            payload = await operation.run(arguments)
            result = success_result(payload)
            succeeded = True
            return result
        except ToolError as e:
            self.logger.warning(f"{tool_name} rejected: {e.message}")
            return ToolFailure(e.code, e.message)
        except Exception as e:
            message = f"Failed to {operation.description}: {error_message(e)}"
            self.logger.error(f"{tool_name} failed: {message}")
            return ToolFailure(ErrorCode.INTERNAL_ERROR, message)
        finally:
            self.track_request(start_time, succeeded)

    # =========================================================================
    # METRICS & RATE LIMITING
    # =========================================================================

    def track_request(self, start_time: float, success: bool) -> None:
        """Record one executed invocation; called exactly once per call."""
        self.metrics.track_request(start_time, success)

    def check_rate_limit(self, key: str) -> Optional[ToolFailure]:
        """
        Apply the per-caller request gate.

        Returns:
            None when the call may proceed, otherwise an INVALID_REQUEST failure.
            Rejections count only in ``rate_limited_count``.
        """
        if self.rate_limiter.check(key):
            return None
        self.metrics.track_rate_limited()
        self.logger.warning(f"Rate limit exceeded for {key}")
        return ToolFailure(ErrorCode.INVALID_REQUEST, RATE_LIMIT_MESSAGE)

    def get_metrics(self) -> RequestMetrics:
        return self.metrics.snapshot()

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def _validator(self, tool_name: str) -> Optional[Draft7Validator]:
        if tool_name not in self._validators:
            for tool in self.get_tools():
                if tool.name == tool_name:
                    self._validators[tool_name] = Draft7Validator(tool.input_schema)
                    break
        return self._validators.get(tool_name)

    def validate_arguments(self, tool_name: str, arguments: Dict[str, Any]) -> None:
        """Check ``arguments`` against the tool's input schema.

        Raises:
            ToolError: INVALID_PARAMS listing every violation
        """
        validator = self._validator(tool_name)
        if validator is None:
            return
        errors = sorted(validator.iter_errors(arguments), key=lambda item: list(item.path))
        if errors:
            details = "; ".join(
                f"{'.'.join(str(segment) for segment in error.path) or '$'}: {error.message}"
                for error in errors
            )
            raise ToolError(ErrorCode.INVALID_PARAMS, f"Invalid arguments for {tool_name}: {details}")

    @staticmethod
    def require_exactly_one(arguments: Dict[str, Any], inline_key: str, reference_key: str) -> str:
        """
        Enforce exactly-one-of for two alternative inputs of the same payload.

        Returns:
            The key that was supplied

        Raises:
            ToolError: INVALID_PARAMS when neither or both are supplied
        """
        has_inline = _is_given(arguments.get(inline_key))
        has_reference = _is_given(arguments.get(reference_key))
        if not has_inline and not has_reference:
            raise ToolError(
                ErrorCode.INVALID_PARAMS,
                f"Either {inline_key} or {reference_key} must be provided",
            )
        if has_inline and has_reference:
            raise ToolError(
                ErrorCode.INVALID_PARAMS,
                f"Cannot use both {inline_key} and {reference_key}. Use one or the other.",
            )
        return inline_key if has_inline else reference_key

    # =========================================================================
    # LOCAL FILES
    # =========================================================================

    async def resolve_text(
        self, arguments: Dict[str, Any], inline_key: str, reference_key: str = "filePath"
    ) -> Tuple[str, Optional[str]]:
        """
        Resolve a text payload given inline or as a local file reference.

        Returns:
            Tuple of (text, file path or None when given inline)
        """
        if self.require_exactly_one(arguments, inline_key, reference_key) == inline_key:
            return arguments[inline_key], None
        file_path = arguments[reference_key]
        return await self.read_text_file(file_path), file_path

    async def read_text_file(self, file_path: str) -> str:
        """Read a whole UTF-8 file; failures become INVALID_REQUEST."""
        try:
            async with aiofiles.open(file_path, "r", encoding="utf-8", newline="") as f:
                content = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ToolError(
                ErrorCode.INVALID_REQUEST,
                f"Failed to read file {file_path}: {error_message(e)}",
            ) from e
        self.logger.info(f"Source loaded from file: {file_path}")
        return content

    @staticmethod
    async def ensure_directory(path: str) -> None:
        """Create ``path`` and its parents; an existing directory is not an error."""
        if not path:
            return
        await aiofiles.os.makedirs(path, exist_ok=True)

    async def write_text_file(self, file_path: str, content: str) -> None:
        """Write ``content`` to ``file_path`` as UTF-8, creating parent directories."""
        await self.ensure_directory(os.path.dirname(file_path))
        async with aiofiles.open(file_path, "w", encoding="utf-8", newline="") as f:
            await f.write(content)
