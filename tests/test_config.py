"""Tests for Settings."""

import pytest
from pydantic import ValidationError

from abap_adt_mcp.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [
        "SAP_URL",
        "SAP_USER",
        "SAP_PASSWORD",
        "SAP_CLIENT",
        "MCP_TRANSPORT",
        "MCP_PORT",
        "RATE_LIMIT",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.sap_url is None
        assert settings.sap_language == "EN"
        assert settings.sap_stateful is True
        assert settings.mcp_transport == "stdio"
        assert settings.mcp_port == 8765
        assert settings.rate_limit == "1/second"
        assert settings.rate_limit_enabled is True
        assert settings.telemetry_enabled is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SAP_URL", "https://sap.example.com:44300/")
        monkeypatch.setenv("SAP_CLIENT", "100")
        monkeypatch.setenv("MCP_PORT", "9000")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.sap_url == "https://sap.example.com:44300"
        assert settings.sap_client == "100"
        assert settings.mcp_port == 9000
        assert settings.log_level == "DEBUG"

    def test_empty_url_is_none(self):
        assert Settings(SAP_URL="  ", _env_file=None).sap_url is None

    def test_invalid_transport_rejected(self, monkeypatch):
        monkeypatch.setenv("MCP_TRANSPORT", "carrier-pigeon")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
