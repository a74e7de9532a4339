"""Tools for reading and writing ABAP source code."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition

OBJECT_SOURCE_URL_DESCRIPTION = (
    "The object source URL (e.g., /sap/bc/adt/oo/classes/zcl_example/source/main)"
)


def count_lines(source: str) -> int:
    """Number of newline-separated segments; an empty source is one line."""
    return source.count("\n") + 1


class ObjectSourceHandlers(BaseHandler):
    """Get, download and set the source of ABAP objects."""

    namespace = "object source"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="getObjectSource",
                description="Retrieves source code for ABAP objects",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectSourceUrl": {"type": "string"},
                        "options": {"type": "string"},
                    },
                    "required": ["objectSourceUrl"],
                },
            ),
            ToolDefinition(
                name="downloadObjectSource",
                description="Downloads ABAP source code to a local file to avoid context overflow",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectSourceUrl": {
                            "type": "string",
                            "description": OBJECT_SOURCE_URL_DESCRIPTION,
                        },
                        "filePath": {
                            "type": "string",
                            "description": "Local file path to save source to",
                        },
                        "options": {
                            "type": "string",
                            "description": "Optional query parameters",
                        },
                    },
                    "required": ["objectSourceUrl", "filePath"],
                },
            ),
            ToolDefinition(
                name="setObjectSource",
                description=(
                    "Sets source code for ABAP objects. "
                    "Use filePath for large files to avoid context overflow."
                ),
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectSourceUrl": {
                            "type": "string",
                            "description": OBJECT_SOURCE_URL_DESCRIPTION,
                        },
                        "source": {
                            "type": "string",
                            "description": "Source code content (for small files - included in context)",
                        },
                        "filePath": {
                            "type": "string",
                            "description": "Local file path to read source from (for large files - bypasses context)",
                        },
                        "lockHandle": {
                            "type": "string",
                            "description": "Lock handle obtained from lock operation",
                        },
                        "transport": {
                            "type": "string",
                            "description": "Transport request number (optional)",
                        },
                    },
                    "required": ["objectSourceUrl", "lockHandle"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "getObjectSource": Operation("get object source", self._get_object_source),
            "downloadObjectSource": Operation(
                "download object source", self._download_object_source
            ),
            "setObjectSource": Operation(
                "set object source", self._set_object_source, ("source", "filePath")
            ),
        }

    async def _get_object_source(self, args: Dict[str, Any]) -> Dict[str, Any]:
        source = await self.client.get_object_source(args["objectSourceUrl"], args.get("options"))
        return {"source": source}

    async def _download_object_source(self, args: Dict[str, Any]) -> Dict[str, Any]:
        file_path = args["filePath"]
        source = await self.client.get_object_source(args["objectSourceUrl"], args.get("options"))
        await self.write_text_file(file_path, source)

        lines = count_lines(source)
        size = len(source.encode("utf-8"))
        self.logger.info(f"Source downloaded to file: {file_path} (lines={lines}, size={size})")
        return {"savedTo": file_path, "lines": lines, "size": size}

    async def _set_object_source(self, args: Dict[str, Any]) -> Dict[str, Any]:
        source, file_path = await self.resolve_text(args, "source")
        await self.client.set_object_source(
            args["objectSourceUrl"], source, args["lockHandle"], args.get("transport")
        )
        return {
            "updated": True,
            "sourceLoadedFrom": f"File: {file_path}" if file_path else "Context (direct source)",
        }
