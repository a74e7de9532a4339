from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class ObjectDeletionHandlers(BaseHandler):
    """Delete a locked ABAP object."""

    namespace = "object deletion"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="deleteObject",
                description="Delete an ABAP object from the system",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectUrl": {"type": "string"},
                        "lockHandle": {"type": "string"},
                        "transport": {"type": "string"},
                    },
                    "required": ["objectUrl", "lockHandle"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {"deleteObject": Operation("delete object", self._delete_object)}

    async def _delete_object(self, args: Dict[str, Any]) -> Dict[str, Any]:
        await self.client.delete_object(args["objectUrl"], args["lockHandle"], args.get("transport"))
        return {"deleted": True, "objectUrl": args["objectUrl"]}
