"""MCP host surface for confluence_sync (stdio transport)."""
