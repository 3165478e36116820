"""Incremental pull-sync engine.

``SyncEngine.sync_all()`` runs one pass:

1. Load the sync history ledger.
2. List remote pages with the configured CQL query. Listing errors abort
   the pass and propagate; an empty listing is a successful no-op.
3. Select changed pages with ``ChangeDetector``. No changes is a
   successful no-op with every page counted as skipped.
4. Plan the file path of every selected page, so page links can target
   files written later in the same pass.
5. For each selected page, strictly one at a time: convert, optionally
   download attachments, rewrite page links, add frontmatter and markers,
   merge with the user tail and write, then upsert its ledger record.
   A page failure is recorded and the loop moves on.
6. Save the ledger once, whatever the number of failures.
7. Return a ``SyncResult``.
"""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone
from typing import Iterable, Mapping

from ..config_schema import SyncFilters, UnifiedConfig
from ..converters.links import transform_links
from ..converters.metadata import build_frontmatter, combine_content
from ..converters.storage_to_markdown import StorageToMarkdownConverter
from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from ..errors import ConfluenceSyncError
from ..file_handler import FileAdapter, LocalFileAdapter
from .attachments import AttachmentDownloader, replace_attachment_urls
from .detector import ChangeDetector
from .history import DEFAULT_HISTORY_PATH, SyncHistoryStore
from .mapper import PathMapper
from .models import RemoteDocument, SyncError, SyncHistoryRecord, SyncResult
from .query import BASE_QUERY, build_search_query, ensure_valid_filters
from .writer import DocumentWriter

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Mirror remote pages into a vault folder.

    Args:
        client: Remote page source.
        adapter: Vault file adapter.
        sync_path: Vault-relative folder receiving pages.
        attachments_path: Vault-relative folder receiving attachments.
        history_path: Vault-relative ledger path.
        cql: Search query used for the listing.
        search_limit: Maximum number of pages listed per pass.
        force_sync: Select every page regardless of timestamps.
        download_attachments: Copy attachments into the vault.
        log: Logger shared with every component the engine builds.
    """

    def __init__(
        self,
        client: RemoteClient,
        adapter: FileAdapter,
        *,
        sync_path: str = "confluence/",
        attachments_path: str = "attachments/",
        history_path: str = DEFAULT_HISTORY_PATH,
        cql: str = BASE_QUERY,
        search_limit: int = 500,
        force_sync: bool = False,
        download_attachments: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.cql = cql
        self.search_limit = search_limit
        self.download_attachments = download_attachments
        self.logger = log or logger

        self.history = SyncHistoryStore(adapter, history_path, log=self.logger)
        self.detector = ChangeDetector(
            self.history, force_sync=force_sync, log=self.logger
        )
        self.writer = DocumentWriter(adapter, log=self.logger)
        self.mapper = PathMapper(
            adapter, sync_path, attachments_path, log=self.logger
        )
        self.converter = StorageToMarkdownConverter(
            binary_writer=self.writer.write_binary, log=self.logger
        )
        self.attachments = AttachmentDownloader(
            client, self.writer, self.mapper, log=self.logger
        )

    @classmethod
    def from_config(
        cls,
        unified: UnifiedConfig,
        client: RemoteClient,
        adapter: FileAdapter | None = None,
        filters: SyncFilters | None = None,
        log: logging.Logger | None = None,
    ) -> SyncEngine:
        """Build an engine from the ``sync`` config section.

        The query filter is validated before anything touches the network.

        Raises:
            ConfigurationError: The filter is enabled but empty or invalid.
        """
        sync = unified.sync
        filters = filters if filters is not None else sync.filters
        ensure_valid_filters(filters)
        return cls(
            client,
            adapter or LocalFileAdapter(sync.vault_root),
            sync_path=sync.sync_path,
            attachments_path=sync.attachments_path,
            history_path=sync.history_path,
            cql=build_search_query(filters),
            search_limit=sync.search_limit,
            force_sync=sync.force_full_sync,
            download_attachments=sync.download_attachments,
            log=log,
        )

    def set_force_sync(self, force: bool) -> None:
        self.detector.set_force_sync(force)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def sync_all(self) -> SyncResult:
        """Run one sync pass.

        Raises:
            ConfluenceSyncError: The remote listing failed, or the ledger
                could not be saved.
        """
        started_at = _now()

        await self.history.load_history()

        self.logger.info("Listing pages: %s", self.cql)
        documents = await run_sync(
            self.client.search_pages, self.cql, self.search_limit
        )
        if not documents:
            self.logger.info("No pages to sync")
            return SyncResult(
                success=True, started_at=started_at, completed_at=_now()
            )

        changed = self.detector.filter_changed_pages(documents)
        skipped = len(documents) - len(changed)
        if not changed:
            self.logger.info("All %d pages are up to date", len(documents))
            return SyncResult(
                success=True,
                total_pages=len(documents),
                skipped_pages=skipped,
                started_at=started_at,
                completed_at=_now(),
            )

        self.logger.info(
            "Syncing %d pages (%d skipped)", len(changed), skipped
        )
        planned = await self.plan_paths(changed)
        page_files, title_files = self._link_targets(documents, planned)
        errors: list[SyncError] = []
        synced_files: list[str] = []
        for document in changed:
            try:
                path = await self.sync_page(
                    document,
                    planned=planned,
                    page_files=page_files,
                    title_files=title_files,
                )
            except Exception as exc:
                self.logger.error(
                    "Failed to sync page %s (%s): %s",
                    document.id,
                    document.title,
                    exc,
                    extra={"page_id": document.id},
                )
                errors.append(
                    SyncError(
                        page_id=document.id,
                        page_title=document.title,
                        error=str(exc),
                        kind=exc.kind.value
                        if isinstance(exc, ConfluenceSyncError)
                        else None,
                    )
                )
                continue

            synced_files.append(path)
            self.history.update_record(
                document.id,
                SyncHistoryRecord(
                    page_id=document.id,
                    last_synced_at=_now(),
                    last_modified=document.last_modified,
                    file_path=path,
                ),
            )

        await self.history.save_history()

        result = SyncResult(
            success=not errors,
            total_pages=len(documents),
            updated_pages=len(changed),
            skipped_pages=skipped,
            success_count=len(synced_files),
            failure_count=len(errors),
            errors=errors,
            started_at=started_at,
            completed_at=_now(),
            synced_files=synced_files,
        )
        self.logger.info(
            "Sync finished: %d succeeded, %d failed, %d skipped",
            result.success_count,
            result.failure_count,
            result.skipped_pages,
        )
        return result

    # ------------------------------------------------------------------
    # Path planning
    # ------------------------------------------------------------------

    async def plan_paths(
        self, documents: Iterable[RemoteDocument]
    ) -> dict[str, str]:
        """Resolve the target path of every document before any write.

        Paths claimed earlier in the pass are not handed out twice. A page
        whose path cannot be resolved is left out; ``sync_page`` resolves
        it again and the failure is recorded there.
        """
        planned: dict[str, str] = {}
        for document in documents:
            try:
                planned[document.id] = await self.mapper.resolve_page_path(
                    document,
                    self.history.get_record(document.id),
                    taken=set(planned.values()),
                )
            except (OSError, ConfluenceSyncError) as exc:
                self.logger.warning(
                    "Could not plan a path for page %s: %s", document.id, exc
                )
        return planned

    def _link_targets(
        self,
        documents: Iterable[RemoteDocument],
        planned: Mapping[str, str],
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Page id and page title maps to file names, for link rewriting."""
        page_files = self.history.page_file_map()
        for page_id, path in planned.items():
            page_files[page_id] = posixpath.basename(path)
        title_files = {
            document.title: page_files[document.id]
            for document in documents
            if document.id in page_files
        }
        return page_files, title_files

    # ------------------------------------------------------------------
    # Per-page sync
    # ------------------------------------------------------------------

    async def sync_page(
        self,
        document: RemoteDocument,
        planned: Mapping[str, str] | None = None,
        page_files: Mapping[str, str] | None = None,
        title_files: Mapping[str, str] | None = None,
    ) -> str:
        """Convert and write one page.

        Args:
            document: Page to write.
            planned: Paths from ``plan_paths``; resolved here when absent.
            page_files: Page ids mapped to file names for ``/pages/<id>``
                links (defaults to the history ledger).
            title_files: Page titles mapped to file names for ``ac:link``
                page links.

        Returns:
            The vault-relative path written.
        """
        path = (planned or {}).get(document.id)
        if path is None:
            record = self.history.get_record(document.id)
            path = await self.mapper.resolve_page_path(document, record)
        folder = posixpath.dirname(path)
        filename = posixpath.basename(path)
        page_slug = filename.removesuffix(".md")

        titles = dict(title_files or {})
        titles[document.title] = filename
        markdown = await self.converter.convert_document(
            document,
            page_slug=page_slug,
            diagram_folder=folder,
            title_files=titles,
        )

        if self.download_attachments:
            url_to_path = await self.attachments.download_attachments(
                document.id, page_slug
            )
            if url_to_path:
                markdown = replace_attachment_urls(markdown, url_to_path)

        ids = (
            dict(page_files)
            if page_files is not None
            else self.history.page_file_map()
        )
        ids[document.id] = filename
        markdown = transform_links(markdown, ids)

        content = combine_content(build_frontmatter(document), markdown)
        await self.writer.write_file(path, content)
        return path
