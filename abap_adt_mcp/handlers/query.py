"""Data preview tools."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition

DEFAULT_ROW_NUMBER = 100

ROW_NUMBER_SCHEMA = {
    "type": "integer",
    "minimum": 1,
    "default": DEFAULT_ROW_NUMBER,
    "description": "Maximum number of rows to return",
}


class QueryHandlers(BaseHandler):
    namespace = "query"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="tableContents",
                description="Read the contents of a DDIC table or CDS view",
                input_schema={
                    "type": "object",
                    "properties": {
                        "ddicEntityName": {"type": "string"},
                        "rowNumber": dict(ROW_NUMBER_SCHEMA),
                    },
                    "required": ["ddicEntityName"],
                },
            ),
            ToolDefinition(
                name="runQuery",
                description="Run a freestyle ABAP SQL query",
                input_schema={
                    "type": "object",
                    "properties": {
                        "sqlQuery": {"type": "string"},
                        "rowNumber": dict(ROW_NUMBER_SCHEMA),
                    },
                    "required": ["sqlQuery"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "tableContents": Operation("get table contents", self._table_contents),
            "runQuery": Operation("run query", self._run_query),
        }

    async def _table_contents(self, args: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.client.table_contents(
            args["ddicEntityName"], args.get("rowNumber", DEFAULT_ROW_NUMBER)
        )
        return {"data": data}

    async def _run_query(self, args: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.client.run_query(args["sqlQuery"], args.get("rowNumber", DEFAULT_ROW_NUMBER))
        return {"data": data}
