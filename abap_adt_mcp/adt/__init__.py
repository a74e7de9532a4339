"""ABAP Development Tools (ADT) session client."""

from abap_adt_mcp.adt.client import AdtClient, AdtException
from abap_adt_mcp.adt.session import SessionClient

__all__ = ["AdtClient", "AdtException", "SessionClient"]
