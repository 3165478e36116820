"""Sync history ledger persistence.

The ledger is a single JSON object mapping page ids to
``SyncHistoryRecord`` entries (camelCase keys). It is loaded once at the
start of a sync pass and saved once at the end.

Key design choices:

* **Loading never raises** -- a missing file is an empty ledger; a corrupt
  one is an empty ledger plus a warning, so a bad cache costs a full
  re-sync instead of blocking sync entirely.
* **Saving propagates** -- a failed save raises ``FileWriteError``.
* **Whole-file replace** -- the adapter writes the file in one go.
"""

from __future__ import annotations

import json
import logging
import posixpath

from pydantic import ValidationError

from ..errors import ConfluenceSyncError, FileWriteError
from ..file_handler import FileAdapter
from .models import SyncHistoryRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PATH = ".confluence_sync/sync-history.json"


class SyncHistoryStore:
    """In-memory ledger backed by a JSON file in the vault.

    Args:
        adapter: File adapter rooted at the vault.
        history_path: Vault-relative path of the ledger file.
        log: Logger for ledger diagnostics.
    """

    def __init__(
        self,
        adapter: FileAdapter,
        history_path: str = DEFAULT_HISTORY_PATH,
        log: logging.Logger | None = None,
    ) -> None:
        self._adapter = adapter
        self.history_path = history_path
        self.logger = log or logger
        self._records: dict[str, SyncHistoryRecord] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load_history(self) -> dict[str, SyncHistoryRecord]:
        """Read the ledger, replacing the in-memory state.

        Returns:
            The loaded records (empty on a missing or corrupt file).
        """
        self._records = {}
        try:
            if not await self._adapter.exists(self.history_path):
                self.logger.info("No sync history found, starting fresh")
                return self._records
            raw = await self._adapter.read(self.history_path)
        except (OSError, ConfluenceSyncError) as e:
            self.logger.warning("Could not read sync history: %s", e)
            return self._records

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(
                    f"expected a JSON object, got {type(data).__name__}"
                )
            records = {
                str(page_id): SyncHistoryRecord.model_validate(entry)
                for page_id, entry in data.items()
            }
        except (ValueError, ValidationError) as e:
            self.logger.warning(
                "Sync history at %s is corrupt, starting fresh: %s",
                self.history_path,
                e,
            )
            return self._records

        self._records = records
        self.logger.info("Loaded %d sync history records", len(records))
        return self._records

    async def save_history(self) -> None:
        """Write the whole ledger, creating its folder when missing.

        Raises:
            FileWriteError: The ledger could not be written.
        """
        data = {
            page_id: record.model_dump(by_alias=True)
            for page_id, record in self._records.items()
        }
        content = json.dumps(data, indent=2, ensure_ascii=False)
        folder = posixpath.dirname(self.history_path)
        try:
            if folder and not await self._adapter.exists(folder):
                await self._adapter.create_folder(folder)
            await self._adapter.write(self.history_path, content)
        except FileWriteError:
            raise
        except (OSError, ConfluenceSyncError) as e:
            raise FileWriteError(
                f"Failed to save sync history: {e}",
                {"path": self.history_path},
            ) from e
        self.logger.info("Saved %d sync history records", len(self._records))

    async def clear_history(self) -> None:
        """Empty the ledger and persist the empty state."""
        self._records.clear()
        await self.save_history()
        self.logger.info("Sync history cleared")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_record(self, page_id: str) -> SyncHistoryRecord | None:
        return self._records.get(page_id)

    def update_record(self, page_id: str, record: SyncHistoryRecord) -> None:
        """Insert or replace a record in memory (persisted by ``save_history``)."""
        self._records[page_id] = record

    def get_all(self) -> dict[str, SyncHistoryRecord]:
        return dict(self._records)

    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def page_file_map(self) -> dict[str, str]:
        """Map page ids to the file names they were synced to."""
        return {
            page_id: posixpath.basename(record.file_path)
            for page_id, record in self._records.items()
        }
