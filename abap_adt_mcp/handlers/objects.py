"""Repository search and object navigation tools."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition

DEFAULT_MAX_RESULTS = 100


class ObjectHandlers(BaseHandler):
    namespace = "object"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="searchObject",
                description="Search for ABAP objects by name pattern",
                input_schema={
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Name pattern, * is a wildcard"},
                        "objType": {"type": "string", "description": "ADT object type, e.g. CLAS/OC"},
                        "max": {"type": "integer", "minimum": 1},
                    },
                    "required": ["query"],
                },
            ),
            ToolDefinition(
                name="objectStructure",
                description="Get the structure (metadata and links) of an ABAP object",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectUrl": {"type": "string"},
                        "version": {"type": "string", "enum": ["active", "inactive", "workingArea"]},
                    },
                    "required": ["objectUrl"],
                },
            ),
            ToolDefinition(
                name="findObjectPath",
                description="Find the package path of an ABAP object",
                input_schema={
                    "type": "object",
                    "properties": {"objectUrl": {"type": "string"}},
                    "required": ["objectUrl"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "searchObject": Operation("search objects", self._search_object),
            "objectStructure": Operation("get object structure", self._object_structure),
            "findObjectPath": Operation("find object path", self._find_object_path),
        }

    async def _search_object(self, args: Dict[str, Any]) -> Dict[str, Any]:
        results = await self.client.search_object(
            args["query"], args.get("objType"), args.get("max", DEFAULT_MAX_RESULTS)
        )
        return {"results": results, "count": len(results)}

    async def _object_structure(self, args: Dict[str, Any]) -> Dict[str, Any]:
        structure = await self.client.object_structure(args["objectUrl"], args.get("version"))
        return {"structure": structure}

    async def _find_object_path(self, args: Dict[str, Any]) -> Dict[str, Any]:
        path = await self.client.find_object_path(args["objectUrl"])
        return {"path": path}
