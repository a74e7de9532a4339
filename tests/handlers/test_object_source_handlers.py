"""Tests for the object source tools (get, download, set)."""

import json
import os

import pytest

from abap_adt_mcp.errors import ErrorCode
from abap_adt_mcp.handlers.object_source import ObjectSourceHandlers, count_lines
from abap_adt_mcp.results import ToolFailure, ToolSuccess

CLASS_SOURCE_URL = "/sap/bc/adt/oo/classes/zcl_example/source/main"


@pytest.fixture
def handler(mock_client):
    return ObjectSourceHandlers(mock_client)


def _payload(result):
    assert isinstance(result, ToolSuccess)
    assert len(result.content) == 1
    return json.loads(result.content[0]["text"])


def _source_of(lines: int, size: int) -> str:
    """Build an ASCII source with exactly ``lines`` lines and ``size`` bytes."""
    newlines = lines - 1
    body = "x" * (size - newlines)
    per_line, extra = divmod(len(body), lines)
    parts = []
    offset = 0
    for index in range(lines):
        length = per_line + (1 if index < extra else 0)
        parts.append(body[offset : offset + length])
        offset += length
    return "\n".join(parts)


class TestGetObjectSource:
    """Tests for getObjectSource."""

    @pytest.mark.asyncio
    async def test_returns_source_with_success_status(self, handler, mock_client):
        """The source is returned verbatim next to status success."""
        mock_client.get_object_source.return_value = "REPORT z. WRITE 'hi'."

        result = await handler.handle("getObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL})

        payload = _payload(result)
        assert payload["status"] == "success"
        assert payload["source"] == "REPORT z. WRITE 'hi'."
        assert "REPORT z. WRITE 'hi'." in result.content[0]["text"]
        mock_client.get_object_source.assert_awaited_once_with(CLASS_SOURCE_URL, None)

    @pytest.mark.asyncio
    async def test_passes_options(self, handler, mock_client):
        """Optional query options are forwarded to the client."""
        mock_client.get_object_source.return_value = ""

        await handler.handle(
            "getObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "options": "version=inactive"}
        )

        mock_client.get_object_source.assert_awaited_once_with(CLASS_SOURCE_URL, "version=inactive")

    @pytest.mark.asyncio
    async def test_remote_failure_is_internal_error(self, handler, mock_client):
        """A client exception becomes INTERNAL_ERROR embedding its message."""
        mock_client.get_object_source.side_effect = RuntimeError("connection refused")

        result = await handler.handle("getObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL})

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INTERNAL_ERROR
        assert result.message == "Failed to get object source: connection refused"


class TestSetObjectSource:
    """Tests for setObjectSource and its exclusive source inputs."""

    @pytest.mark.asyncio
    async def test_both_source_and_file_path_rejected(self, handler, mock_client):
        """Supplying both inputs is INVALID_PARAMS and nothing is written."""
        result = await handler.handle(
            "setObjectSource",
            {"objectSourceUrl": CLASS_SOURCE_URL, "source": "X", "filePath": "/tmp/x.abap"},
        )

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INVALID_PARAMS
        assert result.message == "Cannot use both source and filePath. Use one or the other."
        mock_client.set_object_source.assert_not_called()

    @pytest.mark.asyncio
    async def test_neither_source_nor_file_path_rejected(self, handler, mock_client):
        """Supplying neither input is INVALID_PARAMS."""
        result = await handler.handle(
            "setObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "lockHandle": "LH1"}
        )

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INVALID_PARAMS
        assert result.message == "Either source or filePath must be provided"
        mock_client.set_object_source.assert_not_called()

    @pytest.mark.asyncio
    async def test_inline_source(self, handler, mock_client):
        """Inline source is written with the lock handle and transport."""
        result = await handler.handle(
            "setObjectSource",
            {
                "objectSourceUrl": CLASS_SOURCE_URL,
                "source": "REPORT z.",
                "lockHandle": "LH1",
                "transport": "DEVK900001",
            },
        )

        payload = _payload(result)
        assert payload == {
            "status": "success",
            "updated": True,
            "sourceLoadedFrom": "Context (direct source)",
        }
        mock_client.set_object_source.assert_awaited_once_with(
            CLASS_SOURCE_URL, "REPORT z.", "LH1", "DEVK900001"
        )

    @pytest.mark.asyncio
    async def test_source_from_file(self, handler, mock_client, tmp_path):
        """A file reference is read in full and preserved byte for byte."""
        source_file = tmp_path / "zcl_example.abap"
        source_file.write_bytes("CLASS zcl_example.\r\n  \"äöü\nENDCLASS.".encode("utf-8"))

        result = await handler.handle(
            "setObjectSource",
            {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(source_file), "lockHandle": "LH1"},
        )

        payload = _payload(result)
        assert payload["sourceLoadedFrom"] == f"File: {source_file}"
        mock_client.set_object_source.assert_awaited_once_with(
            CLASS_SOURCE_URL, "CLASS zcl_example.\r\n  \"äöü\nENDCLASS.", "LH1", None
        )

    @pytest.mark.asyncio
    async def test_missing_file_is_invalid_request(self, handler, mock_client, tmp_path):
        """An unreadable file is INVALID_REQUEST naming the path and cause."""
        missing = tmp_path / "missing.abap"

        result = await handler.handle(
            "setObjectSource",
            {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(missing), "lockHandle": "LH1"},
        )

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INVALID_REQUEST
        assert result.message.startswith(f"Failed to read file {missing}: ")
        assert "No such file" in result.message
        mock_client.set_object_source.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_lock_handle_is_invalid_params(self, handler, mock_client):
        """Required arguments are checked against the input schema."""
        result = await handler.handle(
            "setObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "source": "X"}
        )

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INVALID_PARAMS
        assert "lockHandle" in result.message
        mock_client.set_object_source.assert_not_called()


class TestDownloadObjectSource:
    """Tests for downloadObjectSource."""

    @pytest.mark.asyncio
    async def test_creates_directory_and_writes_file(self, handler, mock_client, tmp_path):
        """A missing target directory is created and stats are reported."""
        source = _source_of(lines=120, size=3000)
        assert count_lines(source) == 120
        assert len(source.encode("utf-8")) == 3000
        mock_client.get_object_source.return_value = source
        target = tmp_path / "out" / "zcl.abap"

        result = await handler.handle(
            "downloadObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(target)}
        )

        payload = _payload(result)
        assert payload == {"status": "success", "savedTo": str(target), "lines": 120, "size": 3000}
        assert os.path.isdir(tmp_path / "out")
        with open(target, encoding="utf-8", newline="") as f:
            assert f.read() == source

    @pytest.mark.asyncio
    async def test_existing_directory_is_not_an_error(self, handler, mock_client, tmp_path):
        """Downloading twice into the same directory succeeds both times."""
        mock_client.get_object_source.return_value = "REPORT z."
        target = tmp_path / "out" / "z.abap"

        first = await handler.handle(
            "downloadObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(target)}
        )
        second = await handler.handle(
            "downloadObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(target)}
        )

        assert isinstance(first, ToolSuccess)
        assert isinstance(second, ToolSuccess)

    @pytest.mark.asyncio
    async def test_size_counts_utf8_bytes(self, handler, mock_client, tmp_path):
        """size is the UTF-8 byte length, not the character count."""
        mock_client.get_object_source.return_value = "ä\n"
        target = tmp_path / "u.abap"

        result = await handler.handle(
            "downloadObjectSource", {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(target)}
        )

        payload = _payload(result)
        assert payload["size"] == 3
        assert payload["lines"] == 2

    @pytest.mark.asyncio
    async def test_directory_creation_failure_propagates(self, handler, mock_client, tmp_path):
        """A file blocking the directory path fails the call."""
        mock_client.get_object_source.return_value = "REPORT z."
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = await handler.handle(
            "downloadObjectSource",
            {"objectSourceUrl": CLASS_SOURCE_URL, "filePath": str(blocker / "z.abap")},
        )

        assert isinstance(result, ToolFailure)
        assert result.code == ErrorCode.INTERNAL_ERROR
        assert result.message.startswith("Failed to download object source: ")
        assert handler.get_metrics().error_count == 1


class TestCountLines:
    """Tests for the line counter."""

    def test_empty_source_is_one_line(self):
        assert count_lines("") == 1

    def test_trailing_newline_adds_a_line(self):
        assert count_lines("a\nb\n") == 3
