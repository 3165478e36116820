"""Error response builders for MCP tool handlers.

Every ``ConfluenceSyncError`` reaching a tool handler is translated into a
structured ``CallToolResult`` with a corrective action, so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...errors import ConfluenceSyncError, ErrorKind, RateLimitError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (an ``ErrorKind`` value, or
            validation_error, unknown_tool, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("authentication", "401", "Check CONFLUENCE_API_TOKEN.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def corrective_action(error: ConfluenceSyncError) -> str:
    """Return the recovery hint for an error kind."""
    match error.kind:
        case ErrorKind.AUTHENTICATION:
            return "Check CONFLUENCE_EMAIL and CONFLUENCE_API_TOKEN, then retry."
        case ErrorKind.PERMISSION_DENIED:
            return "Ask a Confluence administrator for read access to the space."
        case ErrorKind.MALFORMED_QUERY:
            return "Fix sync.filters (space keys, labels, root page ids) in config.yml."
        case ErrorKind.RATE_LIMITED:
            if isinstance(error, RateLimitError) and error.retry_after:
                return f"Wait {error.retry_after:g} seconds before retrying."
            return "Wait a minute before retrying."
        case ErrorKind.API_ERROR:
            return "Retry later; check the Confluence status page if it persists."
        case ErrorKind.NETWORK:
            return "Check CONFLUENCE_URL and network connectivity, then retry."
        case ErrorKind.CONVERSION:
            return "Check the page content in Confluence; other pages are unaffected."
        case ErrorKind.FILE_WRITE:
            return "Check vault folder permissions and free disk space."
        case ErrorKind.PATH_TRAVERSAL:
            return "Use vault-relative paths without '..' in sync_path and attachments_path."
        case ErrorKind.CONFIGURATION:
            return "Fix the configuration file (.confluence_sync/config.yml) and retry."


def translate_sync_error(error: ConfluenceSyncError) -> types.CallToolResult:
    """Translate a ``ConfluenceSyncError`` to a structured error response."""
    return build_error_response(
        error.kind.value, error.message, corrective_action(error)
    )
