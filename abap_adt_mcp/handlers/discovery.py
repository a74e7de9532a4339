from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class DiscoveryHandlers(BaseHandler):
    namespace = "discovery"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="adtDiscovery",
                description="List the ADT services (workspaces and collections) offered by the system",
                input_schema={"type": "object", "properties": {}},
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {"adtDiscovery": Operation("discover ADT services", self._discovery)}

    async def _discovery(self, args: Dict[str, Any]) -> Dict[str, Any]:
        workspaces = await self.client.discovery()
        return {"workspaces": workspaces}
