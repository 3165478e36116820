"""MCP tool handlers for Confluence sync.

Defines three tools:

- ``confluence_sync`` -- run one sync pass into the vault.
- ``confluence_check_changes`` -- count changed pages without writing.
- ``confluence_sync_status`` -- summarize the sync history ledger.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...config_loader import load_hierarchical_config
from ...config_schema import UnifiedConfig, build_config
from ...core.client import RemoteClient
from ...file_handler import LocalFileAdapter
from ...sync.detector import BackgroundChangeDetector
from ...sync.engine import SyncEngine
from ...sync.history import SyncHistoryStore
from ...sync.query import ensure_valid_filters
from ...sync.reporter import (
    format_change_check,
    format_sync_report,
    format_synced_files,
    result_to_json,
)
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOL = types.Tool(
    name="confluence_sync",
    description=(
        "Pull changed Confluence pages into the local vault as Markdown. "
        "Content between the sync markers is replaced; local notes below "
        "the end marker are preserved."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "force": {
                "type": "boolean",
                "default": False,
                "description": "Re-sync every page regardless of timestamps",
            },
        },
        "required": [],
    },
)

CHECK_CHANGES_TOOL = types.Tool(
    name="confluence_check_changes",
    description=(
        "Count Confluence pages changed since the last sync without "
        "writing anything."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={"type": "object", "properties": {}, "required": []},
)

SYNC_STATUS_TOOL = types.Tool(
    name="confluence_sync_status",
    description=(
        "Show sync state -- sync folder, number of tracked pages and the "
        "most recent sync time."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
    inputSchema={"type": "object", "properties": {}, "required": []},
)


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


def _load_unified_config() -> UnifiedConfig:
    """Load the unified config from the hierarchical config system."""
    raw = load_hierarchical_config()
    return build_config(raw)


def _history_store(unified: UnifiedConfig) -> SyncHistoryStore:
    adapter = LocalFileAdapter(unified.sync.vault_root)
    return SyncHistoryStore(adapter, unified.sync.history_path)


async def _handle_sync(
    client: RemoteClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``confluence_sync`` tool."""
    force = args.get("force", False)
    if not isinstance(force, bool):
        raise ValueError("force must be a boolean")

    unified = _load_unified_config()
    engine = SyncEngine.from_config(unified, client)
    if force:
        engine.set_force_sync(True)

    result = await engine.sync_all()

    text = format_sync_report(result)
    if result.synced_files:
        text += "\n\n" + format_synced_files(result)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=result_to_json(result),
        isError=not result.success,
    )


async def _handle_check_changes(
    client: RemoteClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``confluence_check_changes`` tool."""
    unified = _load_unified_config()
    ensure_valid_filters(unified.sync.filters)

    detector = BackgroundChangeDetector(
        client,
        _history_store(unified),
        filters=unified.sync.filters,
    )
    changed = await detector.check_for_changes()

    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_change_check(changed))
        ],
        structuredContent={"changed_pages": changed},
    )


async def _handle_sync_status(
    client: RemoteClient, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``confluence_sync_status`` tool."""
    unified = _load_unified_config()
    history = _history_store(unified)
    records = await history.load_history()

    last_sync = max(
        (record.last_synced_at for record in records.values()),
        default="never",
    )

    lines = [
        "Confluence sync status",
        f"  Vault:         {unified.sync.vault_root}",
        f"  Sync folder:   {unified.sync.sync_path}",
        f"  History file:  {unified.sync.history_path}",
        f"  Last sync:     {last_sync}",
        f"  Tracked pages: {len(records)}",
        f"  Connected:     {'yes' if client.is_connected() else 'no'}",
    ]

    structured = {
        "vault_root": unified.sync.vault_root,
        "sync_path": unified.sync.sync_path,
        "history_path": unified.sync.history_path,
        "last_sync": last_sync,
        "tracked_pages": len(records),
        "connected": client.is_connected(),
    }

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=SYNC_TOOL, writes_vault=True, handler=_handle_sync),
    ToolSpec(
        tool=CHECK_CHANGES_TOOL,
        writes_vault=False,
        handler=_handle_check_changes,
    ),
    ToolSpec(
        tool=SYNC_STATUS_TOOL,
        writes_vault=False,
        handler=_handle_sync_status,
    ),
]
