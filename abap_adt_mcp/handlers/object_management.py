"""Activation tools."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class ObjectManagementHandlers(BaseHandler):
    namespace = "object management"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="activateObjects",
                description="Activate one or more ABAP objects",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objects": {
                            "type": "array",
                            "minItems": 1,
                            "items": {
                                "type": "object",
                                "properties": {
                                    "name": {"type": "string"},
                                    "url": {"type": "string"},
                                },
                                "required": ["name", "url"],
                            },
                        },
                        "preauditRequested": {"type": "boolean", "default": True},
                    },
                    "required": ["objects"],
                },
            ),
            ToolDefinition(
                name="inactiveObjects",
                description="List objects of the current user that are not yet activated",
                input_schema={"type": "object", "properties": {}},
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "activateObjects": Operation("activate objects", self._activate_objects),
            "inactiveObjects": Operation("get inactive objects", self._inactive_objects),
        }

    async def _activate_objects(self, args: Dict[str, Any]) -> Dict[str, Any]:
        objects = [(item["name"], item["url"]) for item in args["objects"]]
        result = await self.client.activate(objects, args.get("preauditRequested", True))
        return {"activation": result}

    async def _inactive_objects(self, args: Dict[str, Any]) -> Dict[str, Any]:
        inactive = await self.client.inactive_objects()
        return {"inactiveObjects": inactive, "count": len(inactive)}
