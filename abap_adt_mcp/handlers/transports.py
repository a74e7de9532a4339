"""Transport request tools."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class TransportHandlers(BaseHandler):
    namespace = "transport"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="transportInfo",
                description="Get transport information for an object source",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objSourceUrl": {"type": "string"},
                        "devClass": {"type": "string"},
                        "operation": {"type": "string", "default": "I"},
                    },
                    "required": ["objSourceUrl"],
                },
            ),
            ToolDefinition(
                name="createTransport",
                description="Create a new transport request",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objSourceUrl": {"type": "string"},
                        "REQUEST_TEXT": {"type": "string"},
                        "DEVCLASS": {"type": "string"},
                        "transportLayer": {"type": "string"},
                    },
                    "required": ["objSourceUrl", "REQUEST_TEXT", "DEVCLASS"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "transportInfo": Operation("get transport info", self._transport_info),
            "createTransport": Operation("create transport", self._create_transport),
        }

    async def _transport_info(self, args: Dict[str, Any]) -> Dict[str, Any]:
        info = await self.client.transport_info(
            args["objSourceUrl"], args.get("devClass", ""), args.get("operation") or "I"
        )
        return {"transportInfo": info}

    async def _create_transport(self, args: Dict[str, Any]) -> Dict[str, Any]:
        transport_number = await self.client.create_transport(
            args["objSourceUrl"],
            args["REQUEST_TEXT"],
            args["DEVCLASS"],
            args.get("transportLayer", ""),
        )
        return {"transportNumber": transport_number}
