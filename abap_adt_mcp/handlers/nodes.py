from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class NodeHandlers(BaseHandler):
    """Browse the repository tree (packages, programs, classes...)."""

    namespace = "node"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="nodeContents",
                description="List the child nodes of a repository node, e.g. the objects of a package",
                input_schema={
                    "type": "object",
                    "properties": {
                        "parent_type": {"type": "string", "description": "Node type, e.g. DEVC/K"},
                        "parent_name": {"type": "string"},
                    },
                    "required": ["parent_type"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {"nodeContents": Operation("get node contents", self._node_contents)}

    async def _node_contents(self, args: Dict[str, Any]) -> Dict[str, Any]:
        contents = await self.client.node_contents(args["parent_type"], args.get("parent_name"))
        return {"contents": contents}
