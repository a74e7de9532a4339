"""Object lock tools.

Locks are held by the remote system until a matching ``unLock`` call; nothing
here tracks which caller owns a lock.
"""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition


class ObjectLockHandlers(BaseHandler):
    namespace = "object lock"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name="lock",
                description="Lock an object",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectUrl": {"type": "string"},
                        "accessMode": {"type": "string", "default": "MODIFY"},
                    },
                    "required": ["objectUrl"],
                },
            ),
            ToolDefinition(
                name="unLock",
                description="Unlock an object",
                input_schema={
                    "type": "object",
                    "properties": {
                        "objectUrl": {"type": "string"},
                        "lockHandle": {"type": "string"},
                    },
                    "required": ["objectUrl", "lockHandle"],
                },
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "lock": Operation("lock object", self._lock),
            "unLock": Operation("unlock object", self._unlock),
        }

    async def _lock(self, args: Dict[str, Any]) -> Dict[str, Any]:
        lock = await self.client.lock(args["objectUrl"], args.get("accessMode") or "MODIFY")
        # Keys in ``lock`` are the remote LOCK_HANDLE, CORRNR, ... fields
        return {"lockHandle": lock.get("LOCK_HANDLE", ""), **lock}

    async def _unlock(self, args: Dict[str, Any]) -> Dict[str, Any]:
        await self.client.unlock(args["objectUrl"], args["lockHandle"])
        return {"unlocked": True}
