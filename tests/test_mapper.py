"""Tests for page-to-path resolution."""

from confluence_sync.sync.mapper import PathMapper, join_vault_path
from confluence_sync.sync.models import SyncHistoryRecord


def _frontmatter(page_id: str) -> str:
    return f"---\ntitle: X\nconfluence_id: '{page_id}'\n---\n\nbody\n"


class TestResolvePagePath:
    async def test_slug_in_sync_folder(self, adapter, make_doc):
        mapper = PathMapper(adapter, "confluence/")
        path = await mapper.resolve_page_path(make_doc("1", title="Team Home"))
        assert path == "confluence/team-home.md"

    async def test_history_path_reused(self, adapter, make_doc):
        mapper = PathMapper(adapter, "confluence/")
        record = SyncHistoryRecord(
            page_id="1",
            last_synced_at="2024-01-02T00:00:00Z",
            last_modified="2024-01-01T00:00:00Z",
            file_path="confluence/old-title.md",
        )
        doc = make_doc("1", title="Renamed Title")
        assert await mapper.resolve_page_path(doc, record) == "confluence/old-title.md"

    async def test_collision_gets_suffix(self, adapter, make_doc):
        adapter.files["confluence/notes.md"] = _frontmatter("99")
        adapter.files["confluence/notes-2.md"] = _frontmatter("98")
        mapper = PathMapper(adapter, "confluence")
        path = await mapper.resolve_page_path(make_doc("1", title="Notes"))
        assert path == "confluence/notes-3.md"

    async def test_own_file_reused(self, adapter, make_doc):
        adapter.files["confluence/notes.md"] = _frontmatter("1")
        mapper = PathMapper(adapter, "confluence")
        path = await mapper.resolve_page_path(make_doc("1", title="Notes"))
        assert path == "confluence/notes.md"

    async def test_file_without_frontmatter_is_foreign(self, adapter, make_doc):
        adapter.files["notes.md"] = "hand written"
        mapper = PathMapper(adapter, "")
        path = await mapper.resolve_page_path(make_doc("1", title="Notes"))
        assert path == "notes-2.md"

    async def test_taken_paths_skipped(self, adapter, make_doc):
        mapper = PathMapper(adapter, "confluence")
        path = await mapper.resolve_page_path(
            make_doc("2", title="Notes"), taken={"confluence/notes.md"}
        )
        assert path == "confluence/notes-2.md"

    async def test_taken_own_file_not_reused(self, adapter, make_doc):
        adapter.files["confluence/notes.md"] = _frontmatter("1")
        mapper = PathMapper(adapter, "confluence")
        path = await mapper.resolve_page_path(
            make_doc("1", title="Notes"), taken={"confluence/notes.md"}
        )
        assert path == "confluence/notes-2.md"


class TestAttachmentPath:
    def test_per_page_folder(self, adapter):
        mapper = PathMapper(adapter, attachments_path="attachments/")
        assert mapper.attachment_path("team-home", "diagram.png") == (
            "attachments/team-home/diagram.png"
        )

    def test_directory_parts_stripped(self, adapter):
        mapper = PathMapper(adapter, attachments_path="files")
        assert mapper.attachment_path("p", "../../evil.png") == "files/p/evil.png"


def test_join_vault_path():
    assert join_vault_path("", "a.md") == "a.md"
    assert join_vault_path("/confluence/", "a.md") == "confluence/a.md"
    assert join_vault_path("a\\b", "c.md") == "a/b/c.md"
