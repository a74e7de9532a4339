"""Main entry point for the ABAP ADT MCP server."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from abap_adt_mcp import telemetry
from abap_adt_mcp.adt.client import AdtClient
from abap_adt_mcp.config import Settings, get_settings
from abap_adt_mcp.handlers.registry import ToolRegistry, get_tool_registry
from abap_adt_mcp.server.stdio_server import run_stdio
from abap_adt_mcp.server.websocket_server import MCPWebSocketServer

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; on stdio, stdout carries protocol frames."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def setup_signal_handlers(server: MCPWebSocketServer, loop: asyncio.AbstractEventLoop) -> None:
    """Setup signal handlers for graceful shutdown."""

    def signal_handler(sig):
        logger.info(f"Received signal {sig}, shutting down...")
        loop.create_task(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda s, f: signal_handler(s))


async def run_websocket(registry: ToolRegistry, host: str, port: int) -> None:
    """Run the WebSocket front-end until a shutdown signal arrives."""
    server = MCPWebSocketServer(registry, host=host, port=port)
    setup_signal_handlers(server, asyncio.get_running_loop())

    await server.start()
    logger.info(f"Server running on ws://{host}:{port}")
    logger.info("Press Ctrl+C to stop")
    await server.wait_closed()


async def run_server(
    settings: Settings,
    transport: str = "stdio",
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """
    Build the shared ADT client and the registry, then serve on ``transport``.

    Args:
        settings: Application settings
        transport: "stdio" or "websocket"
        host: WebSocket bind host (defaults to settings)
        port: WebSocket port (defaults to settings)
    """
    client = AdtClient.from_settings(settings)
    registry = get_tool_registry(client, settings)
    logger.info(
        f"Connecting to {settings.sap_url} as {settings.sap_user or '<anonymous>'} "
        f"(stateful={client.is_stateful})"
    )

    try:
        if transport == "websocket":
            await run_websocket(registry, host or settings.mcp_host, port or settings.mcp_port)
        else:
            await run_stdio(registry)
    finally:
        await client.close()


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="ABAP ADT MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "websocket"],
        default=settings.mcp_transport,
        help="Protocol front-end (default: MCP_TRANSPORT or stdio)",
    )
    parser.add_argument(
        "--host",
        default=settings.mcp_host,
        help="WebSocket host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.mcp_port,
        help="WebSocket port to listen on (default: 8765)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    configure_logging(settings.log_level)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    telemetry.configure_metrics(settings.telemetry_enabled)

    try:
        asyncio.run(
            run_server(settings, transport=args.transport, host=args.host, port=args.port)
        )
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        return 1
    finally:
        telemetry.shutdown_metrics()


if __name__ == "__main__":
    sys.exit(main())
