"""Change detection against the sync history ledger.

``ChangeDetector`` decides which listed pages need a write.
``BackgroundChangeDetector`` is its read-only polling variant: it counts
changed pages without writing files or history, and never raises.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from ..config_schema import SyncFilters
from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from .history import SyncHistoryStore
from .models import RemoteDocument, SyncHistoryRecord
from .query import build_search_query

logger = logging.getLogger(__name__)

BACKGROUND_CHECK_LIMIT = 100


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None when *value* is not a
    valid timestamp.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ChangeDetector:
    """Select pages whose remote revision is newer than the last sync.

    Args:
        history: Ledger used to look up existing records.
        force_sync: When True every page is selected.
        log: Logger for per-page decisions (debug level).
    """

    def __init__(
        self,
        history: SyncHistoryStore,
        force_sync: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self.history = history
        self.force_sync = force_sync
        self.logger = log or logger

    def set_force_sync(self, force: bool) -> None:
        self.force_sync = force

    def needs_update(
        self,
        document: RemoteDocument,
        record: SyncHistoryRecord | None = None,
    ) -> bool:
        """Return True when *document* must be written.

        Order of checks: force flag, missing record, then a strict
        ``remote > recorded`` comparison of the last-modified instants.
        Equal instants are unchanged. An unparseable timestamp on either
        side counts as changed.
        """
        if self.force_sync:
            self.logger.debug("Force sync: updating page %s", document.id)
            return True

        if record is None:
            self.logger.debug(
                "New page detected: %s (%s)", document.id, document.title
            )
            return True

        remote = parse_timestamp(document.last_modified)
        recorded = parse_timestamp(record.last_modified)
        if remote is None or recorded is None:
            self.logger.warning(
                "Unparseable timestamp for page %s (remote=%r, recorded=%r); "
                "treating as changed",
                document.id,
                document.last_modified,
                record.last_modified,
            )
            return True

        changed = remote > recorded
        if changed:
            self.logger.debug(
                "Page changed: %s (%s) remote=%s recorded=%s",
                document.id,
                document.title,
                document.last_modified,
                record.last_modified,
            )
        else:
            self.logger.debug(
                "No changes: %s (%s)", document.id, document.title
            )
        return changed

    def filter_changed_pages(
        self, documents: Iterable[RemoteDocument]
    ) -> list[RemoteDocument]:
        """Return the documents needing an update, in input order."""
        documents = list(documents)
        changed = [
            doc
            for doc in documents
            if self.needs_update(doc, self.history.get_record(doc.id))
        ]
        self.logger.info(
            "%d/%d pages need update", len(changed), len(documents)
        )
        return changed


class BackgroundChangeDetector:
    """Unattended change check used by periodic polling.

    Never writes files or history. Every failure is logged and reported as
    zero changes.

    Args:
        client: Remote client.
        history: Ledger (loaded, never saved).
        filters: Optional query filter.
        limit: Maximum number of pages listed per check.
        log: Logger for check diagnostics.
    """

    def __init__(
        self,
        client: RemoteClient,
        history: SyncHistoryStore,
        filters: SyncFilters | None = None,
        limit: int = BACKGROUND_CHECK_LIMIT,
        log: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.history = history
        self.filters = filters
        self.limit = limit
        self.logger = log or logger

    async def check_for_changes(self) -> int:
        """Return how many listed pages are new or changed (0 on any failure)."""
        try:
            if not self.client.is_connected():
                await run_sync(self.client.validate_connection)

            cql = build_search_query(self.filters)
            documents = await run_sync(
                self.client.search_pages, cql, self.limit
            )
            if not documents:
                self.logger.info("Background check: no pages found")
                return 0

            await self.history.load_history()
            detector = ChangeDetector(self.history, log=self.logger)
            changed = len(detector.filter_changed_pages(documents))
            self.logger.info(
                "Background check: %d changed pages out of %d",
                changed,
                len(documents),
            )
            return changed
        except Exception as e:
            self.logger.info("Background check failed (ignored): %s", e)
            return 0
