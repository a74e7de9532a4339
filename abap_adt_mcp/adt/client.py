"""HTTP client for the ABAP Development Tools (ADT) REST API.

Implements the session client used by every capability handler on top of a
single ``aiohttp.ClientSession``:

- Basic authentication, ``sap-client`` / ``sap-language`` on every request
- Stateful sessions (``X-sap-adt-sessiontype: stateful``) so locks and
  cookies persist across tool calls
- CSRF token fetch and one refetch when the server reports it as required
- ADT exception documents mapped to :class:`AdtException`

Timeouts belong to this client; the dispatch core never cancels a call.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, quote

import aiohttp

from abap_adt_mcp.adt import parsers
from abap_adt_mcp.config import Settings

logger = logging.getLogger(__name__)

CSRF_HEADER = "x-csrf-token"
SESSION_TYPE_HEADER = "X-sap-adt-sessiontype"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

LOCK_ACCEPT = (
    "application/*,application/vnd.sap.as+xml;charset=UTF-8;dataname=com.sap.adt.lock.result"
)
TRANSPORT_CHECK_TYPE = (
    "application/vnd.sap.as+xml; charset=UTF-8; dataname=com.sap.adt.transport.service.checkData"
)
CREATE_TRANSPORT_TYPE = (
    "application/vnd.sap.as+xml; charset=UTF-8; dataname=com.sap.adt.CreateCorrectionRequest"
)
PLAIN_TEXT = "text/plain; charset=utf-8"


class AdtException(Exception):
    """Error reported by the ADT server or raised while talking to it."""

    def __init__(self, message: str, status: Optional[int] = None, exc_type: str = ""):
        super().__init__(message)
        self.message = message
        self.status = status
        self.exc_type = exc_type

    def __repr__(self) -> str:
        return f"AdtException(status={self.status}, type={self.exc_type!r}, message={self.message!r})"


class AdtClient:
    """
    Stateful ADT session client.

    Usage:
        client = AdtClient.from_settings(get_settings())
        await client.login()
        source = await client.get_object_source("/sap/bc/adt/programs/programs/z_demo/source/main")
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        client: str = "",
        language: str = "EN",
        stateful: bool = True,
        verify_ssl: bool = True,
        timeout: int = 60,
    ):
        """
        Initialize the client. No connection is opened until the first call.

        Args:
            base_url: System URL, e.g. https://host:44300
            user: Logon user
            password: Logon password
            client: SAP client (mandant); omitted when empty
            language: Logon language
            stateful: Keep a server-side session across calls
            verify_ssl: Verify the server TLS certificate
            timeout: Total timeout per request in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.password = password
        self.client = client
        self.language = language
        self.stateful = stateful
        self.verify_ssl = verify_ssl
        self.timeout = timeout

        self._session: Optional[aiohttp.ClientSession] = None
        self._csrf_token: Optional[str] = None
        self._logged_in = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdtClient":
        """Create a client from application settings."""
        if not settings.sap_url:
            raise ValueError("SAP_URL is not configured")
        return cls(
            base_url=settings.sap_url,
            user=settings.sap_user,
            password=settings.sap_password,
            client=settings.sap_client,
            language=settings.sap_language,
            stateful=settings.sap_stateful,
            verify_ssl=settings.sap_verify_ssl,
            timeout=settings.sap_timeout,
        )

    @property
    def is_stateful(self) -> bool:
        return self.stateful

    @property
    def logged_in(self) -> bool:
        return self._logged_in

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the shared HTTP session."""
        if self._session is None or self._session.closed:
            connector = None if self.verify_ssl else aiohttp.TCPConnector(ssl=False)
            self._session = aiohttp.ClientSession(
                auth=aiohttp.BasicAuth(self.user, self.password),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                connector=connector,
            )
        return self._session

    def _base_params(self) -> Dict[str, str]:
        params = {}
        if self.client:
            params["sap-client"] = self.client
        if self.language:
            params["sap-language"] = self.language
        return params

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        data: Optional[str] = None,
        content_type: Optional[str] = None,
        accept: str = "*/*",
        retry_csrf: bool = True,
    ) -> str:
        """
        Send a request to the ADT server and return the response body.

        Args:
            method: HTTP method
            path: Path below the system URL (or an absolute URL)
            params: Query parameters, merged with client/language
            data: Request body as text (sent UTF-8 encoded)
            content_type: Content-Type of the body
            accept: Accept header
            retry_csrf: Refetch the CSRF token once when it is rejected

        Returns:
            Response body as text

        Raises:
            AdtException: On HTTP errors or connection failures
        """
        method = method.upper()
        if method not in SAFE_METHODS and not self._csrf_token:
            await self._fetch_csrf_token()

        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}{path}"
        query = self._base_params()
        query.update(params or {})

        headers = {
            "Accept": accept,
            SESSION_TYPE_HEADER: "stateful" if self.stateful else "stateless",
            CSRF_HEADER: self._csrf_token or "fetch",
        }
        if content_type:
            headers["Content-Type"] = content_type
        body = data.encode("utf-8") if data is not None else None

        session = self._get_session()
        logger.debug(f"[ADT] {method} {url} params={query}")
        try:
            async with session.request(
                method, url, params=query, data=body, headers=headers
            ) as response:
                token = response.headers.get(CSRF_HEADER)
                if token and token.lower() != "required":
                    self._csrf_token = token
                text = await response.text()
                status = response.status
                reason = response.reason or ""
        except aiohttp.ClientError as e:
            raise AdtException(f"Connection to {self.base_url} failed: {e}") from e

        if status == 403 and (token or "").lower() == "required" and retry_csrf:
            logger.info("[ADT] CSRF token rejected, fetching a new one")
            self._csrf_token = None
            await self._fetch_csrf_token()
            return await self._request(
                method,
                path,
                params=params,
                data=data,
                content_type=content_type,
                accept=accept,
                retry_csrf=False,
            )

        if status >= 400:
            raise self._error_from_response(status, reason, text)
        return text

    @staticmethod
    def _error_from_response(status: int, reason: str, text: str) -> AdtException:
        parsed = parsers.parse_exception(text) if text else None
        if parsed and parsed[0]:
            message, exc_type = parsed
            return AdtException(message, status=status, exc_type=exc_type)
        message = f"HTTP {status} {reason}".strip()
        return AdtException(message, status=status)

    async def _fetch_csrf_token(self) -> str:
        self._csrf_token = None
        await self._request("GET", "/sap/bc/adt/compatibility/graph", accept="application/xml")
        if not self._csrf_token:
            raise AdtException("Server did not provide a CSRF token")
        return self._csrf_token

    # =========================================================================
    # SESSION
    # =========================================================================

    async def login(self) -> bool:
        """Authenticate and open the server session."""
        await self._fetch_csrf_token()
        self._logged_in = True
        logger.info(f"[ADT] Logged in to {self.base_url} as {self.user}")
        return True

    async def logout(self) -> None:
        """Log off from the server and discard the local session."""
        await self._request("GET", "/sap/public/bc/icf/logoff")
        self._logged_in = False
        self._csrf_token = None
        if self._session is not None:
            self._session.cookie_jar.clear()
        logger.info(f"[ADT] Logged out from {self.base_url}")

    async def drop_session(self) -> None:
        """Forget the server session (cookies and CSRF token).

        The next call opens a new session; locks held by the dropped session
        are released by the server when the session expires.
        """
        self._csrf_token = None
        if self._session is not None:
            self._session.cookie_jar.clear()
        logger.info("[ADT] Session dropped")

    async def close(self) -> None:
        """Log off if a stateful session is open and close the HTTP session."""
        if self._session is None:
            return
        if self._logged_in and self.stateful:
            try:
                await self.logout()
            except AdtException as e:
                logger.warning(f"[ADT] Logout during close failed: {e}")
        await self._session.close()
        self._session = None

    # =========================================================================
    # LOCKS & SOURCES
    # =========================================================================

    async def lock(self, object_url: str, access_mode: str = "MODIFY") -> Dict[str, Any]:
        """Lock an object; returns LOCK_HANDLE, CORRNR and related fields."""
        text = await self._request(
            "POST",
            object_url,
            params={"_action": "LOCK", "accessMode": access_mode},
            accept=LOCK_ACCEPT,
        )
        return parsers.parse_lock(text)

    async def unlock(self, object_url: str, lock_handle: str) -> None:
        await self._request(
            "POST", object_url, params={"_action": "UNLOCK", "lockHandle": lock_handle}
        )

    async def get_object_source(self, url: str, options: Optional[str] = None) -> str:
        """Read source text; ``options`` is a query string such as ``version=active``."""
        params = dict(parse_qsl(options.lstrip("?"))) if options else None
        return await self._request("GET", url, params=params, accept="text/plain")

    async def set_object_source(
        self, url: str, source: str, lock_handle: str, transport: Optional[str] = None
    ) -> None:
        params = {"lockHandle": lock_handle}
        if transport:
            params["corrNr"] = transport
        await self._request("PUT", url, params=params, data=source, content_type=PLAIN_TEXT)

    async def delete_object(
        self, object_url: str, lock_handle: str, transport: Optional[str] = None
    ) -> None:
        params = {"lockHandle": lock_handle}
        if transport:
            params["corrNr"] = transport
        await self._request("DELETE", object_url, params=params)

    # =========================================================================
    # REPOSITORY
    # =========================================================================

    async def search_object(
        self, query: str, obj_type: Optional[str] = None, max_results: int = 100
    ) -> List[Dict[str, str]]:
        params = {"operation": "quickSearch", "query": query, "maxResults": str(max_results)}
        if obj_type:
            params["objectType"] = obj_type
        text = await self._request(
            "GET",
            "/sap/bc/adt/repository/informationsystem/search",
            params=params,
            accept="application/*",
        )
        return parsers.parse_object_references(text)

    async def object_structure(self, object_url: str, version: Optional[str] = None) -> Dict[str, Any]:
        params = {"version": version} if version else None
        text = await self._request("GET", object_url, params=params, accept="application/*")
        return parsers.parse_object_structure(text)

    async def find_object_path(self, object_url: str) -> List[Dict[str, str]]:
        text = await self._request(
            "POST",
            "/sap/bc/adt/repository/nodepath",
            params={"uri": object_url},
            accept="application/*",
        )
        return parsers.parse_node_path(text)

    async def node_contents(self, parent_type: str, parent_name: Optional[str] = None) -> Dict[str, Any]:
        params = {"parent_type": parent_type, "withShortDescriptions": "true"}
        if parent_name:
            params["parent_name"] = parent_name
        text = await self._request(
            "POST",
            "/sap/bc/adt/repository/nodestructure",
            params=params,
            accept="application/vnd.sap.as+xml",
        )
        return parsers.parse_node_contents(text)

    async def discovery(self) -> List[Dict[str, Any]]:
        text = await self._request(
            "GET", "/sap/bc/adt/discovery", accept="application/atomsvc+xml"
        )
        return parsers.parse_discovery(text)

    # =========================================================================
    # TRANSPORTS & ACTIVATION
    # =========================================================================

    async def transport_info(self, url: str, dev_class: str = "", operation: str = "I") -> Dict[str, Any]:
        text = await self._request(
            "POST",
            "/sap/bc/adt/cts/transportchecks",
            data=parsers.build_transport_check(url, dev_class, operation),
            content_type=TRANSPORT_CHECK_TYPE,
            accept=TRANSPORT_CHECK_TYPE.replace(" ", ""),
        )
        return parsers.parse_transport_info(text)

    async def create_transport(
        self, url: str, request_text: str, dev_class: str, transport_layer: str = ""
    ) -> str:
        """Create a transport request and return its number."""
        text = await self._request(
            "POST",
            "/sap/bc/adt/cts/transports",
            data=parsers.build_create_transport(url, request_text, dev_class, transport_layer),
            content_type=CREATE_TRANSPORT_TYPE,
            accept="text/plain",
        )
        return parsers.transport_number_from_path(text)

    async def activate(self, objects: Sequence[Tuple[str, str]], preaudit: bool = True) -> Dict[str, Any]:
        """Activate ``(name, url)`` pairs; returns success flag and messages."""
        text = await self._request(
            "POST",
            "/sap/bc/adt/activation",
            params={"method": "activate", "preauditRequested": "true" if preaudit else "false"},
            data=parsers.build_activation(objects),
            content_type="application/xml",
            accept="application/xml",
        )
        return parsers.parse_activation_result(text)

    async def inactive_objects(self) -> List[Dict[str, str]]:
        text = await self._request(
            "GET",
            "/sap/bc/adt/activation/inactiveobjects",
            accept="application/vnd.sap.adt.inactivectsobjects.v1+xml, application/xml;q=0.8",
        )
        return parsers.parse_inactive_objects(text)

    # =========================================================================
    # CODE ANALYSIS & DATA PREVIEW
    # =========================================================================

    async def syntax_check(
        self,
        url: str,
        source: str,
        main_url: Optional[str] = None,
        main_program: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        check_url = main_url or url
        if main_program:
            check_url = f"{check_url}?context={quote(main_program, safe='')}"
        text = await self._request(
            "POST",
            "/sap/bc/adt/checkruns",
            params={"reporters": "abapCheckRun"},
            data=parsers.build_check_run(url, check_url, source),
            content_type="application/vnd.sap.adt.checkobjects+xml",
            accept="application/vnd.sap.adt.checkmessages+xml",
        )
        return parsers.parse_check_messages(text)

    async def pretty_print(self, source: str) -> str:
        return await self._request(
            "POST",
            "/sap/bc/adt/abapsource/prettyprinter",
            data=source,
            content_type=PLAIN_TEXT,
            accept="text/plain",
        )

    async def table_contents(self, ddic_entity_name: str, row_number: int = 100) -> Dict[str, Any]:
        text = await self._request(
            "POST",
            "/sap/bc/adt/datapreview/ddic",
            params={"rowNumber": str(row_number), "ddicEntityName": ddic_entity_name},
            accept="application/*",
        )
        return parsers.parse_table_data(text)

    async def run_query(self, sql_query: str, row_number: int = 100) -> Dict[str, Any]:
        text = await self._request(
            "POST",
            "/sap/bc/adt/datapreview/freestyle",
            params={"rowNumber": str(row_number)},
            data=sql_query,
            content_type=PLAIN_TEXT,
            accept="application/*",
        )
        return parsers.parse_table_data(text)
