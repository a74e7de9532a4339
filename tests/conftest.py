"""Shared fixtures for the ABAP ADT MCP test suite."""

from unittest.mock import AsyncMock

import pytest

from abap_adt_mcp.adt.client import AdtClient


@pytest.fixture
def mock_client():
    """Session client double; every ADT call is an AsyncMock."""
    client = AsyncMock(spec=AdtClient)
    client.is_stateful = True
    return client
