"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..core.async_utils import run_sync
from ..core.client import ConfluenceClient

logger = logging.getLogger(__name__)

_CREDENTIALS_HINT = "Check CONFLUENCE_URL, CONFLUENCE_EMAIL, CONFLUENCE_API_TOKEN."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (values become visible to env lookups and YAML interpolation)
    - Load YAML config files if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Create ConfluenceClient and validate the connection
    - Fail fast if Confluence is unreachable or rejects the credentials

    Args:
        config_overrides: Optional dict with config values from CLI (url, email, api_token, insecure)

    Yields:
        Dict with 'client' key containing the connected ConfluenceClient

    Raises:
        RuntimeError: If configuration is invalid or the connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Confluence Sync MCP Server starting...")

    try:
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            raw = load_hierarchical_config()
            unified = build_config(raw)
            yaml_fallbacks = {
                k: v
                for k, v in unified.confluence.model_dump().items()
                if v is not None
            }
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            url=overrides.get("url"),
            email=overrides.get("email"),
            api_token=overrides.get("api_token"),
            insecure=overrides.get("insecure", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Confluence URL: %s", config.confluence_url)
        _stderr_print(f"  Confluence URL: {config.confluence_url}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"Configuration error: {e}. {_CREDENTIALS_HINT}"
        ) from e

    logger.info("Validating Confluence connection...")
    _stderr_print("  Validating Confluence connection...")
    try:
        client = ConfluenceClient(config)
        user = await run_sync(client.validate_connection)
        logger.info("Connected to Confluence as %s", user)
        _stderr_print(f"  Connected to Confluence as {user}")
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("Failed to connect to Confluence: %s", e)
        _stderr_print("ERROR: Confluence connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"Confluence connection failed: {e}. {_CREDENTIALS_HINT}"
        ) from e

    yield {"client": client}

    logger.info("MCP server shutting down")
    _stderr_print("Confluence Sync MCP Server shutting down.")
