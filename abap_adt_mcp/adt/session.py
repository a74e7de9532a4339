"""Session client interface used by the capability handlers.

One instance is created at startup and shared by every handler. It carries
server-side session state (cookies, CSRF token, locks held in the remote
system) across calls and is not safe for unmanaged concurrent mutation from
several threads; the server runs all handlers on a single event loop.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class SessionClient(Protocol):
    """Operations of the remote ABAP development system used by the tools."""

    @property
    def is_stateful(self) -> bool: ...

    async def login(self) -> bool: ...

    async def logout(self) -> None: ...

    async def drop_session(self) -> None: ...

    async def lock(self, object_url: str, access_mode: str = "MODIFY") -> Dict[str, Any]: ...

    async def unlock(self, object_url: str, lock_handle: str) -> None: ...

    async def get_object_source(self, url: str, options: Optional[str] = None) -> str: ...

    async def set_object_source(
        self, url: str, source: str, lock_handle: str, transport: Optional[str] = None
    ) -> None: ...

    async def search_object(
        self, query: str, obj_type: Optional[str] = None, max_results: int = 100
    ) -> List[Dict[str, str]]: ...

    async def object_structure(self, object_url: str, version: Optional[str] = None) -> Dict[str, Any]: ...

    async def find_object_path(self, object_url: str) -> List[Dict[str, str]]: ...

    async def transport_info(
        self, url: str, dev_class: str = "", operation: str = "I"
    ) -> Dict[str, Any]: ...

    async def create_transport(
        self, url: str, request_text: str, dev_class: str, transport_layer: str = ""
    ) -> str: ...

    async def activate(
        self, objects: Sequence[Tuple[str, str]], preaudit: bool = True
    ) -> Dict[str, Any]: ...

    async def inactive_objects(self) -> List[Dict[str, str]]: ...

    async def delete_object(
        self, object_url: str, lock_handle: str, transport: Optional[str] = None
    ) -> None: ...

    async def syntax_check(
        self,
        url: str,
        source: str,
        main_url: Optional[str] = None,
        main_program: Optional[str] = None,
    ) -> List[Dict[str, str]]: ...

    async def pretty_print(self, source: str) -> str: ...

    async def node_contents(
        self, parent_type: str, parent_name: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def discovery(self) -> List[Dict[str, Any]]: ...

    async def table_contents(self, ddic_entity_name: str, row_number: int = 100) -> Dict[str, Any]: ...

    async def run_query(self, sql_query: str, row_number: int = 100) -> Dict[str, Any]: ...
