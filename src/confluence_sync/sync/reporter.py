"""Sync report formatting functions.

- ``format_sync_report`` -- human-readable post-sync summary.
- ``format_change_check`` -- one-line background check signal.
- ``result_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from .models import SyncResult


def format_sync_report(result: SyncResult) -> str:
    """Format a sync result as human-readable text.

    Failures are listed individually. Written files are left to
    ``format_synced_files``.
    """
    lines: list[str] = []

    status = "completed" if result.success else "completed with errors"
    lines.append(f"Confluence sync {status}")
    lines.append(f"Started: {result.started_at}")
    if result.completed_at:
        lines.append(f"Completed: {result.completed_at}")
    lines.append("")

    if result.total_pages == 0:
        lines.append("No pages matched the query.")
        return "\n".join(lines).rstrip()

    if result.updated_pages == 0:
        lines.append(
            f"All {result.total_pages} pages are up to date "
            f"({result.skipped_pages} skipped)."
        )
        return "\n".join(lines).rstrip()

    lines.append(
        f"Synced {result.success_count} of {result.updated_pages} changed pages "
        f"({result.failure_count} failed, {result.skipped_pages} skipped, "
        f"{result.total_pages} total)"
    )
    lines.append("")

    if result.errors:
        lines.append("Errors:")
        for err in result.errors:
            lines.append(f"  {err.page_title} ({err.page_id}): {err.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_synced_files(result: SyncResult) -> str:
    if not result.synced_files:
        return "No files written."
    return "Written:\n" + "\n".join(f"  {p}" for p in result.synced_files)


def format_change_check(changed: int) -> str:
    """Background check signal: a count, never error detail."""
    if changed == 0:
        return "No Confluence changes detected."
    noun = "page" if changed == 1 else "pages"
    return f"{changed} Confluence {noun} changed since the last sync."


def result_to_json(result: SyncResult) -> dict:
    """Convert a sync result to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    return {
        "success": result.success,
        "started_at": result.started_at,
        "completed_at": result.completed_at,
        "counts": {
            "total": result.total_pages,
            "updated": result.updated_pages,
            "skipped": result.skipped_pages,
            "succeeded": result.success_count,
            "failed": result.failure_count,
        },
        "errors": [err.model_dump(exclude_none=True) for err in result.errors],
        "synced_files": list(result.synced_files),
    }
