"""Tests for the JSON sync history ledger."""

from __future__ import annotations

import json

import pytest

from confluence_sync.errors import FileWriteError
from confluence_sync.file_handler import LocalFileAdapter
from confluence_sync.sync.history import DEFAULT_HISTORY_PATH, SyncHistoryStore
from confluence_sync.sync.models import SyncHistoryRecord


def _record(page_id: str = "1") -> SyncHistoryRecord:
    return SyncHistoryRecord(
        page_id=page_id,
        last_synced_at="2024-01-02T00:00:00Z",
        last_modified="2024-01-01T00:00:00Z",
        file_path=f"confluence/page-{page_id}.md",
    )


class TestLoadHistory:
    async def test_missing_file_is_empty(self, adapter):
        store = SyncHistoryStore(adapter)
        assert await store.load_history() == {}
        assert len(store) == 0

    async def test_corrupt_file_is_empty(self, adapter):
        adapter.files[DEFAULT_HISTORY_PATH] = "{not json"
        store = SyncHistoryStore(adapter)
        assert await store.load_history() == {}

    async def test_non_object_root_is_empty(self, adapter):
        adapter.files[DEFAULT_HISTORY_PATH] = "[1, 2]"
        assert await SyncHistoryStore(adapter).load_history() == {}

    async def test_invalid_record_is_empty(self, adapter):
        adapter.files[DEFAULT_HISTORY_PATH] = json.dumps({"1": {"pageId": "1"}})
        assert await SyncHistoryStore(adapter).load_history() == {}

    async def test_reads_camel_case_records(self, adapter):
        adapter.files[DEFAULT_HISTORY_PATH] = json.dumps(
            {
                "42": {
                    "pageId": "42",
                    "lastSyncedAt": "2024-01-02T00:00:00Z",
                    "lastModified": "2024-01-01T00:00:00Z",
                    "filePath": "confluence/answer.md",
                }
            }
        )
        store = SyncHistoryStore(adapter)
        await store.load_history()
        record = store.get_record("42")
        assert record is not None
        assert record.file_path == "confluence/answer.md"

    async def test_load_replaces_memory_state(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        await store.load_history()
        assert store.get_record("1") is None


class TestSaveHistory:
    async def test_round_trip(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        store.update_record("2", _record("2"))
        await store.save_history()

        reloaded = SyncHistoryStore(adapter)
        await reloaded.load_history()
        assert reloaded.get_all() == store.get_all()

    async def test_flat_camel_case_mapping(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        await store.save_history()
        data = json.loads(adapter.files[DEFAULT_HISTORY_PATH])
        assert data == {
            "1": {
                "pageId": "1",
                "lastSyncedAt": "2024-01-02T00:00:00Z",
                "lastModified": "2024-01-01T00:00:00Z",
                "filePath": "confluence/page-1.md",
            }
        }

    async def test_creates_folder(self, adapter):
        store = SyncHistoryStore(adapter, "state/deep/history.json")
        await store.save_history()
        assert "state/deep" in adapter.folders

    async def test_write_failure_propagates(self, adapter):
        adapter.fail_writes.add(DEFAULT_HISTORY_PATH)
        store = SyncHistoryStore(adapter)
        with pytest.raises(FileWriteError):
            await store.save_history()

    async def test_on_disk(self, tmp_path):
        store = SyncHistoryStore(LocalFileAdapter(tmp_path))
        store.update_record("1", _record("1"))
        await store.save_history()
        assert (tmp_path / DEFAULT_HISTORY_PATH).is_file()


class TestRecords:
    async def test_update_is_upsert(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        newer = _record("1").model_copy(update={"file_path": "moved.md"})
        store.update_record("1", newer)
        assert store.size() == 1
        assert store.get_record("1").file_path == "moved.md"

    async def test_clear_persists_empty_state(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        await store.save_history()
        await store.clear_history()
        assert len(store) == 0
        assert json.loads(adapter.files[DEFAULT_HISTORY_PATH]) == {}

    def test_page_file_map(self, adapter):
        store = SyncHistoryStore(adapter)
        store.update_record("1", _record("1"))
        assert store.page_file_map() == {"1": "page-1.md"}
