"""MCP tool handlers for Confluence sync.

This package wraps the sync engine and the Confluence client with async
handlers and structured error responses.
"""

from .errors import build_error_response, translate_sync_error
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "build_error_response",
    "translate_sync_error",
    "ToolSpec",
    "ToolRegistry",
    "ALL_SPECS",
    "SYNC_SPECS",
]
