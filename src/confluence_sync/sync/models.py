"""Pydantic models for the Confluence pull-sync engine.

Defines the data contracts shared by the client, converters and sync
modules:

- ``Attachment``: A file attached to a remote page.
- ``RemoteDocument``: Snapshot of one remote page for a single sync pass.
- ``SyncHistoryRecord``: Ledger entry describing the last successful sync.
- ``ParsedFileContent``: A local file split into its two regions.
- ``SyncError``: One per-document failure.
- ``SyncResult``: Aggregate outcome of a sync pass.

All models are frozen (immutable).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Attachment(BaseModel):
    """A file attached to a remote page.

    Attributes:
        id: Attachment content id.
        title: File name as shown in Confluence.
        media_type: MIME type.
        file_size: Size in bytes.
        download_url: Absolute or site-relative download link.
        page_id: Id of the page the file is attached to.
    """

    id: str
    title: str
    media_type: str = "application/octet-stream"
    file_size: int = 0
    download_url: str
    page_id: str

    model_config = {"frozen": True}


class RemoteDocument(BaseModel):
    """Immutable snapshot of a remote page.

    Attributes:
        id: Page id.
        title: Page title.
        space_key: Key of the containing space.
        content: Raw storage-format markup.
        version: Revision number.
        last_modified: ISO 8601 timestamp of the latest revision.
        author: Display name of the last editor.
        url: Canonical web URL.
        labels: Page labels.
        parent_id: Id of the direct parent page, if any.
        attachments: Attachments known at listing time.
        created: ISO 8601 creation timestamp, if the API provided one.
    """

    id: str
    title: str
    space_key: str = ""
    content: str = ""
    version: int = 1
    last_modified: str
    author: str = ""
    url: str = ""
    labels: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    created: str | None = None

    model_config = {"frozen": True}


class SyncHistoryRecord(BaseModel):
    """Ledger entry for one page.

    Serialised with camelCase keys (``pageId``, ``lastSyncedAt``,
    ``lastModified``, ``filePath``) so existing ledgers stay readable.

    Attributes:
        page_id: Page id (unique within the ledger).
        last_synced_at: ISO 8601 timestamp of the last successful sync.
        last_modified: Remote last-modified value seen at that sync.
        file_path: Vault-relative path of the written file.
    """

    page_id: str = Field(alias="pageId")
    last_synced_at: str = Field(alias="lastSyncedAt")
    last_modified: str = Field(alias="lastModified")
    file_path: str = Field(alias="filePath")

    model_config = {"frozen": True, "populate_by_name": True}


class ParsedFileContent(BaseModel):
    """A local file split around the region markers.

    Attributes:
        confluence_content: Text between the markers (or the whole input
            when markers are missing or reversed).
        local_notes: Text after the end marker.
        has_markers: Whether both markers were found in order.
    """

    confluence_content: str
    local_notes: str = ""
    has_markers: bool = False

    model_config = {"frozen": True}


class SyncError(BaseModel):
    """A single per-document failure captured during a sync pass."""

    page_id: str
    page_title: str
    error: str
    kind: str | None = None

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """Aggregate outcome of one ``SyncEngine.sync_all()`` pass.

    Attributes:
        success: True when no document failed.
        total_pages: Number of pages returned by the listing.
        updated_pages: Number of pages selected for sync.
        skipped_pages: ``total_pages - updated_pages``.
        success_count: Selected pages written successfully.
        failure_count: Selected pages that failed.
        errors: One entry per failed page.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass finished.
        synced_files: Vault-relative paths written during the pass.
    """

    success: bool
    total_pages: int = 0
    updated_pages: int = 0
    skipped_pages: int = 0
    success_count: int = 0
    failure_count: int = 0
    errors: list[SyncError] = Field(default_factory=list)
    started_at: str
    completed_at: str | None = None
    synced_files: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    def summary(self) -> str:
        """Format a short human-readable summary of the pass."""
        lines = [
            "Confluence sync " + ("succeeded" if self.success else "failed"),
            f"  Total pages:  {self.total_pages}",
            f"  Updated:      {self.updated_pages}",
            f"  Skipped:      {self.skipped_pages}",
            f"  Succeeded:    {self.success_count}",
            f"  Failed:       {self.failure_count}",
        ]
        return "\n".join(lines)
