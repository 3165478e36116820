"""Map remote pages to vault-relative file paths.

Path resolution for a page:

1. **History** -- a page synced before keeps the path recorded in the
   ledger, so renames on the remote side never orphan local notes.
2. **Slug** -- otherwise the page title is slugified into
   ``<sync folder>/<slug>.md``.
3. **Uniqueness** -- when that file already exists and belongs to a
   different page (per its ``confluence_id`` frontmatter), a numeric
   suffix is added: ``<slug>-2.md``, ``<slug>-3.md`` ...
"""

from __future__ import annotations

import logging
import posixpath
from typing import Collection

import yaml

from ..converters.common import generate_slug
from ..errors import ConfluenceSyncError
from ..file_handler import FileAdapter
from .models import RemoteDocument, SyncHistoryRecord
from .regions import extract_frontmatter

logger = logging.getLogger(__name__)


def _clean_folder(folder: str) -> str:
    return folder.replace("\\", "/").strip().strip("/")


def join_vault_path(folder: str, name: str) -> str:
    folder = _clean_folder(folder)
    return f"{folder}/{name}" if folder else name


class PathMapper:
    """Resolve where pages and their attachments are written.

    Args:
        adapter: Vault file adapter (used for existence checks).
        sync_path: Vault-relative folder receiving pages.
        attachments_path: Vault-relative folder receiving attachments.
    """

    def __init__(
        self,
        adapter: FileAdapter,
        sync_path: str = "confluence/",
        attachments_path: str = "attachments/",
        log: logging.Logger | None = None,
    ) -> None:
        self._adapter = adapter
        self.sync_folder = _clean_folder(sync_path)
        self.attachments_folder = _clean_folder(attachments_path)
        self.logger = log or logger

    async def resolve_page_path(
        self,
        document: RemoteDocument,
        record: SyncHistoryRecord | None = None,
        taken: Collection[str] = (),
    ) -> str:
        """Return the vault-relative path *document* should be written to.

        *taken* holds paths already claimed by other pages in this pass.
        """
        if record is not None and record.file_path:
            return record.file_path
        return await self.ensure_unique_file_name(
            generate_slug(document.title), self.sync_folder, document.id, taken
        )

    async def ensure_unique_file_name(
        self,
        base_name: str,
        folder: str,
        page_id: str | None = None,
        taken: Collection[str] = (),
    ) -> str:
        """Return ``folder/base_name.md`` or the first free numbered variant.

        An existing file whose frontmatter names *page_id* is reused rather
        than skipped. Paths in *taken* are never returned.
        """
        candidate = join_vault_path(folder, f"{base_name}.md")
        counter = 2
        while candidate in taken or await self._adapter.exists(candidate):
            if (
                candidate not in taken
                and page_id
                and await self._belongs_to(candidate, page_id)
            ):
                return candidate
            candidate = join_vault_path(folder, f"{base_name}-{counter}.md")
            counter += 1
        return candidate

    async def _belongs_to(self, path: str, page_id: str) -> bool:
        try:
            frontmatter, _body = extract_frontmatter(
                await self._adapter.read(path)
            )
            meta = yaml.safe_load(frontmatter.strip().strip("-")) or {}
        except (OSError, ConfluenceSyncError, yaml.YAMLError) as e:
            self.logger.debug("Could not inspect %s: %s", path, e)
            return False
        return isinstance(meta, dict) and str(meta.get("confluence_id", "")) == page_id

    def attachment_path(self, page_slug: str, filename: str) -> str:
        """Vault-relative path for an attachment of the page *page_slug*."""
        safe_name = posixpath.basename(filename.replace("\\", "/")) or "attachment"
        return join_vault_path(
            join_vault_path(self.attachments_folder, page_slug), safe_name
        )
