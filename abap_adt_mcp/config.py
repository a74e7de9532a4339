"""Configuration management for the ABAP ADT MCP server."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # SAP connection
    sap_url: Optional[str] = Field(default=None, alias="SAP_URL")
    sap_user: str = Field(default="", alias="SAP_USER")
    sap_password: str = Field(default="", alias="SAP_PASSWORD")
    sap_client: str = Field(default="", alias="SAP_CLIENT")
    sap_language: str = Field(default="EN", alias="SAP_LANGUAGE")
    sap_verify_ssl: bool = Field(default=True, alias="SAP_VERIFY_SSL")
    # Session mode flag: stateful keeps locks and cookies across calls
    sap_stateful: bool = Field(default=True, alias="SAP_STATEFUL")
    sap_timeout: int = Field(default=60, alias="SAP_TIMEOUT")

    # MCP front-end
    mcp_transport: Literal["stdio", "websocket"] = Field(default="stdio", alias="MCP_TRANSPORT")
    mcp_host: str = Field(default="0.0.0.0", alias="MCP_HOST")
    mcp_port: int = Field(default=8765, alias="MCP_PORT")

    # Request gate, in `limits` notation ("1/second", "10 per minute")
    rate_limit: str = Field(default="1/second", alias="RATE_LIMIT")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")

    # Telemetry & logging
    telemetry_enabled: bool = Field(default=False, alias="TELEMETRY_ENABLED")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("sap_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        """Normalize the system URL so paths can be appended directly."""
        if value is None:
            return None
        value = str(value).strip().rstrip("/")
        return value or None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Optional[str]) -> str:
        if value is None:
            return "INFO"
        return str(value).strip().upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
