"""Tests for AdtClient against an in-process fake ADT server."""

from typing import Any, Dict, List

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from abap_adt_mcp.adt.client import AdtClient, AdtException
from abap_adt_mcp.config import Settings

LOCK_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<asx:abap xmlns:asx="http://www.sap.com/abapxml" version="1.0">
  <asx:values><DATA>
    <LOCK_HANDLE>E8A3F1C2B0A14D6B9C6F0D1A2B3C4D5E</LOCK_HANDLE>
    <CORRNR>DEVK900001</CORRNR>
  </DATA></asx:values>
</asx:abap>"""

SEARCH_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<adtcore:objectReferences xmlns:adtcore="http://www.sap.com/adt/core">
  <adtcore:objectReference adtcore:uri="/sap/bc/adt/oo/classes/zcl_example" adtcore:name="ZCL_EXAMPLE"/>
  <adtcore:objectReference adtcore:uri="/sap/bc/adt/oo/classes/zcl_other" adtcore:name="ZCL_OTHER"/>
</adtcore:objectReferences>"""

EXCEPTION_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<exc:exception xmlns:exc="http://www.sap.com/abapxml/types/communicationframework">
  <type id="ExceptionResourceNotFound"/>
  <message lang="EN">Resource zmissing does not exist</message>
</exc:exception>"""


class FakeAdtServer:
    """Minimal ADT endpoint recording every request it receives."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.token = "token-1"
        self.reject_next_token = False

    async def handle(self, request: web.Request) -> web.Response:
        body = await request.text()
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": dict(request.headers),
                "body": body,
            }
        )

        headers = {}
        if request.headers.get("x-csrf-token") == "fetch":
            headers["x-csrf-token"] = self.token

        if request.method not in ("GET", "HEAD") and self.reject_next_token:
            self.reject_next_token = False
            self.token = "token-2"
            return web.Response(status=403, headers={"x-csrf-token": "Required"})

        path = request.path
        if path in ("/sap/bc/adt/compatibility/graph", "/sap/public/bc/icf/logoff"):
            return web.Response(text="", headers=headers)
        if path == "/sap/bc/adt/programs/programs/z_demo/source/main":
            text = "REPORT z_demo." if request.method == "GET" else ""
            return web.Response(text=text, content_type="text/plain", headers=headers)
        if path == "/sap/bc/adt/programs/programs/z_demo" and request.method == "POST":
            return web.Response(text=LOCK_RESPONSE, content_type="application/xml", headers=headers)
        if path == "/sap/bc/adt/repository/informationsystem/search":
            return web.Response(text=SEARCH_RESPONSE, content_type="application/xml", headers=headers)
        if path == "/sap/bc/adt/programs/programs/zmissing/source/main":
            return web.Response(
                status=404, text=EXCEPTION_RESPONSE, content_type="application/xml", headers=headers
            )
        return web.Response(status=500, text="boom", headers=headers)


@pytest.fixture
async def fake_server():
    fake = FakeAdtServer()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    await server.close()


@pytest.fixture
async def client(fake_server):
    adt = AdtClient(fake_server.base_url, "DEVELOPER", "secret", client="100", language="EN")
    yield adt
    await adt.close()


class TestAdtClientRequests:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_get_source_sends_session_headers(self, client, fake_server):
        source = await client.get_object_source(
            "/sap/bc/adt/programs/programs/z_demo/source/main", "version=active"
        )

        assert source == "REPORT z_demo."
        request = fake_server.requests[-1]
        assert request["query"] == {"sap-client": "100", "sap-language": "EN", "version": "active"}
        assert request["headers"]["X-sap-adt-sessiontype"] == "stateful"
        assert request["headers"]["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_modifying_request_fetches_csrf_token_first(self, client, fake_server):
        await client.set_object_source(
            "/sap/bc/adt/programs/programs/z_demo/source/main", "REPORT z_demo.", "LH1", "DEVK900001"
        )

        fetch, put = fake_server.requests
        assert fetch["headers"]["x-csrf-token"] == "fetch"
        assert put["method"] == "PUT"
        assert put["headers"]["x-csrf-token"] == "token-1"
        assert put["query"]["lockHandle"] == "LH1"
        assert put["query"]["corrNr"] == "DEVK900001"
        assert put["body"] == "REPORT z_demo."

    @pytest.mark.asyncio
    async def test_rejected_token_is_refetched_once(self, client, fake_server):
        await client.login()
        fake_server.reject_next_token = True

        lock = await client.lock("/sap/bc/adt/programs/programs/z_demo")

        assert lock["LOCK_HANDLE"] == "E8A3F1C2B0A14D6B9C6F0D1A2B3C4D5E"
        assert fake_server.requests[-1]["headers"]["x-csrf-token"] == "token-2"
        assert fake_server.requests[-1]["query"]["_action"] == "LOCK"

    @pytest.mark.asyncio
    async def test_search_object(self, client, fake_server):
        results = await client.search_object("ZCL_*", "CLAS/OC", 5)

        assert [result["name"] for result in results] == ["ZCL_EXAMPLE", "ZCL_OTHER"]
        query = fake_server.requests[-1]["query"]
        assert query["operation"] == "quickSearch"
        assert query["maxResults"] == "5"
        assert query["objectType"] == "CLAS/OC"


class TestAdtClientErrors:
    """Tests for error mapping."""

    @pytest.mark.asyncio
    async def test_adt_exception_document(self, client):
        with pytest.raises(AdtException) as exc_info:
            await client.get_object_source("/sap/bc/adt/programs/programs/zmissing/source/main")

        assert exc_info.value.status == 404
        assert exc_info.value.exc_type == "ExceptionResourceNotFound"
        assert "does not exist" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_plain_http_error(self, client):
        with pytest.raises(AdtException) as exc_info:
            await client.discovery()

        assert exc_info.value.status == 500
        assert exc_info.value.message.startswith("HTTP 500")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        adt = AdtClient("http://127.0.0.1:9", "DEVELOPER", "secret", timeout=5)
        try:
            with pytest.raises(AdtException) as exc_info:
                await adt.discovery()
        finally:
            await adt.close()

        assert "Connection to http://127.0.0.1:9 failed" in exc_info.value.message


class TestAdtClientSession:
    """Tests for session lifecycle."""

    @pytest.mark.asyncio
    async def test_close_logs_off_stateful_session(self, client, fake_server):
        await client.login()

        await client.close()

        assert fake_server.requests[-1]["path"] == "/sap/public/bc/icf/logoff"
        assert client.logged_in is False

    @pytest.mark.asyncio
    async def test_drop_session_forgets_token(self, client, fake_server):
        await client.login()
        await client.drop_session()
        fake_server.requests.clear()

        await client.unlock("/sap/bc/adt/programs/programs/z_demo", "LH1")

        assert fake_server.requests[0]["headers"]["x-csrf-token"] == "fetch"

    def test_from_settings_requires_url(self):
        with pytest.raises(ValueError):
            AdtClient.from_settings(Settings(_env_file=None, SAP_URL=""))

    def test_from_settings(self):
        settings = Settings(
            _env_file=None, SAP_URL="https://sap.example.com/", SAP_USER="DEV", SAP_STATEFUL=False
        )

        adt = AdtClient.from_settings(settings)

        assert adt.base_url == "https://sap.example.com"
        assert adt.user == "DEV"
        assert adt.is_stateful is False
