"""Tests for frontmatter building and page link rewriting."""

import yaml

from confluence_sync.converters.links import resolve_title_link, transform_links
from confluence_sync.converters.metadata import (
    build_frontmatter,
    build_frontmatter_fields,
    combine_content,
)
from confluence_sync.sync.regions import (
    CONFLUENCE_END_MARKER,
    CONFLUENCE_START_MARKER,
    extract_frontmatter,
    parse_file_content,
)


class TestFrontmatter:
    def test_field_order_and_values(self, make_doc):
        doc = make_doc(
            "42",
            title="Team: Home",
            labels=["ops", "runbook"],
            created="2023-05-01T10:00:00Z",
        )
        fields = build_frontmatter_fields(doc)
        assert list(fields) == [
            "title",
            "confluence_id",
            "confluence_space",
            "confluence_url",
            "author",
            "created",
            "updated",
            "tags",
        ]
        assert fields["created"] == "2023-05-01T10:00:00Z"
        assert fields["tags"] == ["ops", "runbook"]

    def test_created_falls_back_to_updated(self, make_doc):
        fields = build_frontmatter_fields(make_doc("1"))
        assert fields["created"] == fields["updated"]

    def test_yaml_parses_back(self, make_doc):
        doc = make_doc("42", title="Team: Home # 1")
        block = build_frontmatter(doc)
        assert block.startswith("---\n")
        assert block.endswith("\n---")
        meta = yaml.safe_load(block.strip("-"))
        assert meta["title"] == "Team: Home # 1"
        assert meta["confluence_id"] == "42"

    def test_unicode_kept(self, make_doc):
        assert "Übersicht" in build_frontmatter(make_doc("1", title="Übersicht"))


class TestCombineContent:
    def test_markers_wrap_body(self, make_doc):
        fm = build_frontmatter(make_doc("1"))
        combined = combine_content(fm, "# Body")
        parsed = parse_file_content(combined + "\n")
        assert parsed.has_markers
        assert parsed.confluence_content == "# Body"
        assert extract_frontmatter(combined)[0].startswith("---")
        assert combined.index(CONFLUENCE_START_MARKER) < combined.index(
            CONFLUENCE_END_MARKER
        )


class TestLinks:
    URL = "https://acme.atlassian.net/wiki/spaces/ENG/pages/123/Other+Page"

    def test_synced_page_becomes_wikilink(self):
        result = transform_links(f"See [docs]({self.URL}).", {"123": "other-page.md"})
        assert result == "See [[other-page|docs]]."

    def test_same_text_collapses(self):
        result = transform_links(f"[other-page]({self.URL})", {"123": "other-page.md"})
        assert result == "[[other-page]]"

    def test_unsynced_page_annotated(self):
        result = transform_links(f"[docs]({self.URL})", {})
        assert result == f"[docs]({self.URL}) <!-- unsynced page 123 -->"

    def test_external_links_untouched(self):
        text = "[site](https://example.com/pages/1)"
        assert transform_links(text, {"1": "x.md"}) == text



class TestTitleLinks:
    def test_known_title_uses_synced_file(self):
        assert resolve_title_link("Notes", {"Notes": "confluence/notes-2.md"}) == "notes-2"

    def test_unknown_title_uses_slug(self):
        assert resolve_title_link("Release Notes (v2)", {}) == "release-notes-v2"
        assert resolve_title_link("Release Notes") == "release-notes"
