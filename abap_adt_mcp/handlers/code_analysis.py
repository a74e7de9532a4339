"""Syntax check and pretty printer tools.

Both accept the code either inline or as a local file path, never both.
"""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition

FILE_PATH_SCHEMA = {
    "type": "string",
    "description": "Local file path to read the code from (for large files - bypasses context)",
}


class CodeAnalysisHandlers(BaseHandler):
    namespace = "code analysis"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="syntaxCheckCode",
                description="Perform ABAP syntax check on source code",
                input_schema={
                    "type": "object",
                    "properties": {
                        "url": {"type": "string", "description": "Source URL of the checked object"},
                        "code": {"type": "string"},
                        "filePath": dict(FILE_PATH_SCHEMA),
                        "mainUrl": {"type": "string"},
                        "mainProgram": {"type": "string"},
                    },
                    "required": ["url"],
                },
            ),
            ToolDefinition(
                name="prettyPrinter",
                description="Format ABAP source code with the system pretty printer settings",
                input_schema={
                    "type": "object",
                    "properties": {
                        "source": {"type": "string"},
                        "filePath": dict(FILE_PATH_SCHEMA),
                    },
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "syntaxCheckCode": Operation(
                "perform syntax check", self._syntax_check, ("code", "filePath")
            ),
            "prettyPrinter": Operation(
                "pretty print source", self._pretty_printer, ("source", "filePath")
            ),
        }

    async def _syntax_check(self, args: Dict[str, Any]) -> Dict[str, Any]:
        code, _ = await self.resolve_text(args, "code")
        messages = await self.client.syntax_check(
            args["url"], code, args.get("mainUrl"), args.get("mainProgram")
        )
        errors = [message for message in messages if message.get("type") in ("E", "A", "X")]
        return {"hasErrors": bool(errors), "messages": messages}

    async def _pretty_printer(self, args: Dict[str, Any]) -> Dict[str, Any]:
        source, _ = await self.resolve_text(args, "source")
        formatted = await self.client.pretty_print(source)
        return {"source": formatted}
