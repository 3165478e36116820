"""Incremental Confluence-to-vault sync.

Pulls Confluence pages into a local Markdown folder, keeping the
user-written tail of every file across re-syncs.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates one sync pass.
- ``detector``  -- ``ChangeDetector`` and the read-only
  ``BackgroundChangeDetector``.
- ``history``   -- ``SyncHistoryStore``: the JSON ledger of synced pages.
- ``regions``   -- marker-based split into remote and user regions.
- ``writer``    -- ``DocumentWriter``: merge-then-write protocol.
- ``mapper``    -- ``PathMapper``: page-to-file path resolution.
- ``attachments`` -- attachment download and link rewriting.
- ``query``     -- CQL query builder and filter validation.
- ``models``    -- ``RemoteDocument``, ``SyncHistoryRecord``,
  ``SyncResult`` and friends.
- ``reporter``  -- human-readable and JSON result formatting.

Only the models and region helpers are re-exported here; import the
engine from ``confluence_sync.sync.engine``.

Usage example
-------------
::

    from confluence_sync.config_schema import UnifiedConfig
    from confluence_sync.core.client import ConfluenceClient
    from confluence_sync.sync.engine import SyncEngine
    from confluence_sync.sync.reporter import format_sync_report

    engine = SyncEngine.from_config(unified, client=ConfluenceClient(config))
    result = await engine.sync_all()
    print(format_sync_report(result))
"""

from .models import (
    Attachment,
    ParsedFileContent,
    RemoteDocument,
    SyncError,
    SyncHistoryRecord,
    SyncResult,
)
from .regions import (
    CONFLUENCE_END_MARKER,
    CONFLUENCE_START_MARKER,
    LOCAL_NOTES_TEMPLATE,
    extract_frontmatter,
    parse_file_content,
)

__all__ = [
    "Attachment",
    "CONFLUENCE_END_MARKER",
    "CONFLUENCE_START_MARKER",
    "LOCAL_NOTES_TEMPLATE",
    "ParsedFileContent",
    "RemoteDocument",
    "SyncError",
    "SyncHistoryRecord",
    "SyncResult",
    "extract_frontmatter",
    "parse_file_content",
]
