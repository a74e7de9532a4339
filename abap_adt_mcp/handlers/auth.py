"""Session login and logout tools."""

from typing import Any, Dict, List

from abap_adt_mcp.handlers.base import BaseHandler, Operation
from abap_adt_mcp.results import ToolDefinition

_NO_ARGUMENTS = {"type": "object", "properties": {}}


class AuthHandlers(BaseHandler):
    namespace = "auth"

    def get_tools(self) -> List[ToolDefinition]:
        return [
            ToolDefinition("login", "Authenticate with ABAP system", dict(_NO_ARGUMENTS)),
            ToolDefinition("logout", "Terminate ABAP session", dict(_NO_ARGUMENTS)),
            ToolDefinition(
                "dropSession", "Clear local session cache without logging off", dict(_NO_ARGUMENTS)
            ),
        ]

    def operations(self) -> Dict[str, Operation]:
        return {
            "login": Operation("login", self._login),
            "logout": Operation("logout", self._logout),
            "dropSession": Operation("drop session", self._drop_session),
        }

    async def _login(self, args: Dict[str, Any]) -> Dict[str, Any]:
        logged_in = await self.client.login()
        return {"loggedIn": logged_in}

    async def _logout(self, args: Dict[str, Any]) -> Dict[str, Any]:
        await self.client.logout()
        return {"message": "Successfully logged out"}

    async def _drop_session(self, args: Dict[str, Any]) -> Dict[str, Any]:
        await self.client.drop_session()
        return {"message": "Session cleared"}
