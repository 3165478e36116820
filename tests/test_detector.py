"""Tests for ChangeDetector and BackgroundChangeDetector."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from confluence_sync.config_schema import SyncFilters
from confluence_sync.errors import NetworkError
from confluence_sync.sync.detector import (
    BackgroundChangeDetector,
    ChangeDetector,
    parse_timestamp,
)
from confluence_sync.sync.history import SyncHistoryStore
from confluence_sync.sync.models import SyncHistoryRecord


def _record(page_id: str, last_modified: str) -> SyncHistoryRecord:
    return SyncHistoryRecord(
        page_id=page_id,
        last_synced_at="2024-01-02T00:00:00Z",
        last_modified=last_modified,
        file_path=f"confluence/page-{page_id}.md",
    )


class TestParseTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-01T00:00:00.000Z") == datetime(
            2024, 1, 1, tzinfo=timezone.utc
        )

    def test_offset_is_honoured(self):
        assert parse_timestamp("2024-01-01T02:00:00+02:00") == parse_timestamp(
            "2024-01-01T00:00:00Z"
        )

    def test_naive_is_utc(self):
        parsed = parse_timestamp("2024-01-01T00:00:00")
        assert parsed is not None
        assert parsed.tzinfo is not None

    def test_garbage_is_none(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None


class TestNeedsUpdate:
    def _detector(self, adapter, force=False):
        return ChangeDetector(SyncHistoryStore(adapter), force_sync=force)

    def test_new_document(self, adapter, make_doc):
        assert self._detector(adapter).needs_update(make_doc("1"), None)

    def test_newer_remote(self, adapter, make_doc):
        doc = make_doc("1", last_modified="2024-02-01T00:00:00Z")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert self._detector(adapter).needs_update(doc, record)

    def test_equal_timestamps_unchanged(self, adapter, make_doc):
        doc = make_doc("1", last_modified="2024-01-01T00:00:00Z")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert not self._detector(adapter).needs_update(doc, record)

    def test_equal_instants_in_different_formats_unchanged(
        self, adapter, make_doc
    ):
        doc = make_doc("1", last_modified="2024-01-01T01:00:00.000+01:00")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert not self._detector(adapter).needs_update(doc, record)

    def test_older_remote_unchanged(self, adapter, make_doc):
        doc = make_doc("1", last_modified="2023-12-01T00:00:00Z")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert not self._detector(adapter).needs_update(doc, record)

    def test_force_ignores_timestamps(self, adapter, make_doc):
        doc = make_doc("1", last_modified="2023-12-01T00:00:00Z")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert self._detector(adapter, force=True).needs_update(doc, record)

    def test_set_force_sync(self, adapter, make_doc):
        detector = self._detector(adapter)
        doc = make_doc("1", last_modified="2024-01-01T00:00:00Z")
        record = _record("1", "2024-01-01T00:00:00Z")
        detector.set_force_sync(True)
        assert detector.needs_update(doc, record)

    def test_unparseable_timestamp_is_changed(self, adapter, make_doc):
        doc = make_doc("1", last_modified="not a date")
        record = _record("1", "2024-01-01T00:00:00Z")
        assert self._detector(adapter).needs_update(doc, record)


class TestFilterChangedPages:
    def test_preserves_input_order(self, adapter, make_doc):
        history = SyncHistoryStore(adapter)
        history.update_record("2", _record("2", "2024-01-01T00:00:00Z"))
        detector = ChangeDetector(history)
        docs = [
            make_doc("3"),
            make_doc("2", last_modified="2024-01-01T00:00:00Z"),
            make_doc("1"),
        ]
        assert [d.id for d in detector.filter_changed_pages(docs)] == ["3", "1"]

    def test_all_new(self, adapter, make_doc):
        detector = ChangeDetector(SyncHistoryStore(adapter))
        docs = [make_doc(str(i)) for i in range(5)]
        assert detector.filter_changed_pages(docs) == docs


class TestBackgroundChangeDetector:
    async def test_counts_changes_without_writing(
        self, adapter, client_factory, make_doc
    ):
        history_data = {
            "1": {
                "pageId": "1",
                "lastSyncedAt": "2024-01-02T00:00:00Z",
                "lastModified": "2024-01-01T00:00:00.000Z",
                "filePath": "confluence/page-1.md",
            }
        }
        adapter.files[".confluence_sync/sync-history.json"] = json.dumps(
            history_data
        )
        client = client_factory(
            [make_doc("1"), make_doc("2"), make_doc("3")]
        )
        detector = BackgroundChangeDetector(client, SyncHistoryStore(adapter))

        assert await detector.check_for_changes() == 2
        assert adapter.writes == []

    async def test_validates_connection_first(
        self, adapter, client_factory, make_doc
    ):
        client = client_factory([make_doc("1")])
        detector = BackgroundChangeDetector(client, SyncHistoryStore(adapter))
        await detector.check_for_changes()
        assert client.is_connected()

    async def test_uses_filters_and_limit(self, adapter, client_factory):
        client = client_factory([])
        detector = BackgroundChangeDetector(
            client,
            SyncHistoryStore(adapter),
            filters=SyncFilters(enabled=True, space_keys=["ENG"]),
            limit=10,
        )
        assert await detector.check_for_changes() == 0
        assert client.search_calls == [("type = page AND space IN (ENG)", 10)]

    async def test_errors_are_swallowed(self, adapter, client_factory):
        client = client_factory()
        client.search_error = NetworkError("offline")
        detector = BackgroundChangeDetector(client, SyncHistoryStore(adapter))
        assert await detector.check_for_changes() == 0
