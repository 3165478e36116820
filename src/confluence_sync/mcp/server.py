"""MCP server for Confluence sync using stdio transport.

Exposes the sync engine to AI agents as MCP tools: run a sync pass, check
for remote changes, inspect the sync ledger and test connectivity.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from ..errors import ConfluenceSyncError
from ..logger import setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.errors import translate_sync_error
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

SERVER_NAME = "confluence-sync"

server = Server(SERVER_NAME)

# Initialized in main() once the lifespan has connected
_client: RemoteClient | None = None

_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    client: RemoteClient, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test Confluence connectivity."""
    try:
        user = await run_sync(client.validate_connection)
    except ConfluenceSyncError as e:
        return translate_sync_error(e)
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=f"Confluence sync server connected successfully as {user}.",
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test Confluence connectivity and return the authenticated user",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    writes_vault=False,
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_client() -> RemoteClient:
    """Get the global Confluence client.

    Raises:
        RuntimeError: If client is not initialized
    """
    if _client is None:
        raise RuntimeError(
            "Confluence client not initialized. Server lifespan not started."
        )
    return _client


def set_client(client: RemoteClient | None) -> None:
    global _client
    _client = client


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the registered sync tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    client = get_client()
    try:
        return await get_registry().call_tool(name, arguments, client)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def build_registry(read_only: bool = False) -> ToolRegistry:
    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs, read_only=read_only)
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(all_specs),
    )
    return registry


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Logging is set up for MCP mode (file only, never stdout) before the
    stdio transport starts, then the lifespan validates the Confluence
    connection.

    Args:
        config_overrides: Optional dict with config values to override
            (url, email, api_token, insecure, log_file, read_only)
    """
    overrides = config_overrides or {}

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(mode="mcp", log_file=overrides.get("log_file"))

    set_registry(build_registry(read_only=overrides.get("read_only", False)))

    # set_client() is called here rather than inside the lifespan so that
    # running this file as __main__ installs the client on this module
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_client(ctx["client"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_client(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="confluence-sync-mcp",
        description="Confluence Sync MCP Server - pull Confluence pages into a Markdown vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .confluence_sync/config.yml)
  confluence-sync-mcp

  # Override connection settings
  confluence-sync-mcp --url https://acme.atlassian.net --email me@acme.com

  # Expose only the read-only tools
  confluence-sync-mcp --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--url",
        help="Override Confluence site URL (takes precedence over CONFLUENCE_URL and config files)",
    )
    parser.add_argument(
        "--email",
        help="Override account e-mail (takes precedence over CONFLUENCE_EMAIL and config files)",
    )
    parser.add_argument(
        "--api-token",
        help="Override API token (visible in process list -- prefer CONFLUENCE_API_TOKEN)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument(
        "--log-file",
        default="/tmp/confluence-sync.log",
        help="Log file path (default: /tmp/confluence-sync.log)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Do not expose tools that write into the vault",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"confluence-sync version {__version__}",
    )
    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()

    config_overrides = {}
    if args.url:
        config_overrides["url"] = args.url
    if args.email:
        config_overrides["email"] = args.email
    if args.api_token:
        config_overrides["api_token"] = args.api_token
    if args.insecure:
        config_overrides["insecure"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file
    if args.read_only:
        config_overrides["read_only"] = True

    # stdio transport has not started yet, stderr is safe
    override_keys = [
        k for k in config_overrides if k not in ("api_token", "log_file")
    ]
    if override_keys:
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
