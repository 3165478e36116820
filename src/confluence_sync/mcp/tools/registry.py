"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, whether the tool
  writes into the vault, and an async handler with standardized signature
  (client, args) -> CallToolResult.
- ToolRegistry: Drops vault-writing specs when the server runs read-only,
  then provides list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import RemoteClient
from ...errors import ConfluenceSyncError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        writes_vault: True when the tool creates or changes vault files.
        handler: Async handler with signature (client, args) -> CallToolResult.
    """

    tool: types.Tool
    writes_vault: bool
    handler: Callable[[RemoteClient, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs.

    With ``read_only=True`` every spec with ``writes_vault`` set is left out,
    so an agent can inspect sync state without touching the vault.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if read_only and spec.writes_vault:
                continue
            self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        client: RemoteClient,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Sync errors, validation errors and unexpected exceptions are
        translated into structured CallToolResult responses.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_sync_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(client, args)
        except ConfluenceSyncError as e:
            logger.warning("%s failed in %s: %s", e.kind.value, name, e)
            return translate_sync_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
